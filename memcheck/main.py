import argparse
import json
import os
import sys
from typing import List, Optional

from memcheck.analysis.traversal import MemoryAnalyzer
from memcheck.errors import ConfigError, FrontendError
from memcheck.models import AnalysisResult, AnalyzerConfig
from memcheck.parsing.parser import Parser
from memcheck.utils.debug import Debug
from memcheck.utils.report import Reporter


def build_arg_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="memcheck",
		description="Check heap allocation lifecycles (malloc/calloc/realloc/free) in C sources.",
		epilog="Arguments after `--` are passed to clang verbatim.",
	)
	parser.add_argument("sources", nargs="+", help="C source files or directories")
	parser.add_argument("-I", dest="include_dirs", action="append", default=[], metavar="DIR", help="add include directory")
	parser.add_argument("-D", dest="defines", action="append", default=[], metavar="MACRO", help="define a macro")
	parser.add_argument("--std", default=None, help="language standard passed to clang, e.g. c11")
	parser.add_argument("--config", default=None, metavar="FILE", help="JSON file with analyzer settings")
	parser.add_argument("--report-all-leaks", action="store_true", default=None, help="report every leaked variable, not only the first")
	parser.add_argument("--include-headers", action="store_true", default=None, help="also analyze code from included files")
	parser.add_argument("--states", action="store_true", help="print the final pointer state table of each unit")
	parser.add_argument("--json", default=None, metavar="FILE", help="write results as JSON")
	parser.add_argument("--debug", action="store_true", default=None, help="trace state transitions")
	parser.add_argument("--verbose", action="store_true", default=None, help="print info lines")
	return parser


def load_config(args: argparse.Namespace, clang_args: List[str]) -> AnalyzerConfig:
	"""
	Settings from --config first, command-line flags on top.
	"""
	config = AnalyzerConfig.from_file(args.config) if args.config else AnalyzerConfig()
	config.include_dirs = list(config.include_dirs) + args.include_dirs
	config.defines = list(config.defines) + args.defines
	config.clang_args = list(config.clang_args) + clang_args
	if args.std:
		config.std = args.std
	for name in ("report_all_leaks", "include_headers", "debug", "verbose"):
		value = getattr(args, name)
		if value is not None:
			setattr(config, name, value)
	return config


def analyze_path(parser: Parser, analyzer: MemoryAnalyzer, path: str) -> List[AnalysisResult]:
	reporter = analyzer.reporter
	if not os.path.exists(path):
		reporter.begin()
		reporter.error(None, f"no such file or directory: {path}")
		return [AnalysisResult(path=path, ok=False, diagnostics=list(reporter.diagnostics))]

	results = []
	for file_path in parser.get_source_files(path):
		try:
			unit = parser.parse(file_path)
		except FrontendError as exc:
			Debug.log_error(f"{exc}, skipping analysis")
			reporter.begin()
			for message in exc.messages:
				reporter.error(None, message)
			results.append(AnalysisResult(path=exc.path, ok=False, diagnostics=list(reporter.diagnostics)))
			continue
		results.append(analyzer.run(unit))
	return results


def print_states(results: List[AnalysisResult]) -> None:
	for result in results:
		print(f"Pointer states for {result.path}:")
		if not result.variables:
			print("  (none)")
		for var in result.variables:
			print(f"  S: {var['key']}: {var['state']} ({var['domain']} {var['kind']})")


def main(argv: Optional[List[str]] = None) -> int:
	argv = list(sys.argv[1:] if argv is None else argv)
	clang_args: List[str] = []
	if "--" in argv:
		split = argv.index("--")
		argv, clang_args = argv[:split], argv[split + 1:]

	args = build_arg_parser().parse_args(argv)
	try:
		config = load_config(args, clang_args)
	except ConfigError as exc:
		print(f"error: {exc}", file=sys.stderr)
		return 1

	Debug.set_enabled(config.debug)
	parser = Parser(config)
	analyzer = MemoryAnalyzer(config, Reporter())

	results: List[AnalysisResult] = []
	for source in args.sources:
		results.extend(analyze_path(parser, analyzer, source))

	if args.states:
		print_states(results)

	if args.json:
		output_dir = os.path.dirname(os.path.abspath(args.json))
		os.makedirs(output_dir, exist_ok=True)
		with open(args.json, "w", encoding="utf-8") as f:
			f.write(json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=2))

	return 0 if results and all(r.ok for r in results) else 1


if __name__ == "__main__":
	sys.exit(main())
