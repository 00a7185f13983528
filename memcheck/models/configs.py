import json
import os
from dataclasses import dataclass, field, fields
from typing import List

from memcheck.errors import ConfigError


@dataclass
class AnalyzerConfig:
    report_all_leaks: bool = False   # report every unresolved entry instead of the first
    include_headers: bool = False    # also analyze declarations from included files
    include_dirs: List[str] = field(default_factory=list)
    defines: List[str] = field(default_factory=list)
    std: str = ""
    clang_args: List[str] = field(default_factory=list)
    debug: bool = False
    verbose: bool = False

    def compiler_args(self) -> List[str]:
        args = [f"-I{d}" for d in self.include_dirs]
        args += [f"-D{d}" for d in self.defines]
        if self.std:
            args.append(f"-std={self.std}")
        return args + list(self.clang_args)

    @classmethod
    def from_file(cls, path: str) -> "AnalyzerConfig":
        """
        Load a config from a JSON object whose keys are field names.
        Unknown keys are rejected.
        """
        if not os.path.isfile(path):
            raise ConfigError(f"config file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"invalid JSON in {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"config in {path} must be a JSON object")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys in {path}: {', '.join(unknown)}")
        return cls(**data)
