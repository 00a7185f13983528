import os
from typing import Dict, List, Optional

from clang.cindex import Diagnostic as ClangDiagnostic
from clang.cindex import Index, TranslationUnitLoadError

from memcheck.errors import FrontendError
from memcheck.memory_managing.memory import VariableArena
from memcheck.models import AnalyzerConfig, TranslationUnit
from memcheck.parsing.converter import NodeConverter
from memcheck.utils.debug import Debug

class Parser:

    def __init__(self, config: Optional[AnalyzerConfig] = None, index: Optional[Index] = None):

        self.config = config or AnalyzerConfig()
        self._index = index
        self._cached_translation_units: Dict[str, TranslationUnit] = {}  # keyed by absolute path

    @property
    def index(self) -> Index:
        if self._index is None:
            self._index = Index.create()
        return self._index

    def get_source_files(self, path: str) -> List[str]:
        """Recursive search for .c files, in a stable order"""
        if os.path.isfile(path):
            return [path]

        sources = []
        for root, _, files in os.walk(path):
            for file in files:
                if file.endswith(".c"):
                    sources.append(os.path.join(root, file))
        return sorted(sources)

    def parse(self, file_path: str) -> TranslationUnit:
        """
        Parse one source file with libclang and convert it into the node model.
        Raises FrontendError when libclang reports errors; no analysis should run then.
        """
        file_path = os.path.abspath(file_path)
        cached = self._cached_translation_units.get(file_path)
        if cached is not None:
            return cached

        # Basic include arguments: the directory of the file, then user arguments
        args = [f"-I{os.path.dirname(file_path)}"] + self.config.compiler_args()
        Debug.log(f"parsing {file_path} with args {args}")

        try:
            clang_unit = self.index.parse(file_path, args=args)
        except TranslationUnitLoadError as exc:
            raise FrontendError(file_path, [str(exc)]) from exc

        errors = []
        for diag in clang_unit.diagnostics:
            if diag.severity >= ClangDiagnostic.Error:
                errors.append(self._format_diagnostic(diag))
            elif diag.severity == ClangDiagnostic.Warning:
                Debug.log_warning(self._format_diagnostic(diag))
        if errors:
            raise FrontendError(file_path, errors)

        arena = VariableArena()
        converter = NodeConverter(arena, main_file=file_path, include_headers=self.config.include_headers)
        unit = TranslationUnit(file_path, converter.convert_unit(clang_unit.cursor), arena)
        Debug.log(f"{file_path}: {len(arena)} variables interned")

        self._cached_translation_units[file_path] = unit
        return unit

    def _format_diagnostic(self, diag) -> str:
        location = diag.location
        if location is not None and location.file:
            return f"{location.file.name}:{location.line}:{location.column}: {diag.spelling}"
        return diag.spelling
