"""Abstract base scanner."""

from __future__ import annotations

import abc
import fnmatch
import logging
from pathlib import Path

from cycle_finder.models import TypeDecl

logger = logging.getLogger(__name__)


class BaseScanner(abc.ABC):
    """Base class for source scanners that emit resolved declarations."""

    extensions: tuple[str, ...]

    def __init__(self, skip_dirs: list[str] | None = None):
        self.skip_dirs = skip_dirs or [
            "node_modules", ".git", "__pycache__", "build", "dist",
            ".venv", "venv", "env", ".tox", ".eggs", "*.egg-info",
        ]

    @abc.abstractmethod
    def scan_file(self, file_path: Path, module: str | None = None) -> list[TypeDecl]:
        """Scan a single file and return its type declarations."""

    def scan_directory(self, directory: Path) -> list[TypeDecl]:
        """Recursively scan a directory for declarations."""
        decls: list[TypeDecl] = []
        for path in sorted(directory.rglob("*")):
            if path.is_dir():
                continue
            if self._should_skip(path.relative_to(directory)):
                continue
            if path.suffix in self.extensions:
                try:
                    decls.extend(self.scan_file(path, module_name(directory, path)))
                except (SyntaxError, UnicodeDecodeError) as e:
                    logger.warning("Skipping %s: %s", path, e)
        return decls

    def _should_skip(self, path: Path) -> bool:
        for part in path.parts:
            for pattern in self.skip_dirs:
                if fnmatch.fnmatch(part, pattern):
                    return True
        return False


def module_name(root: Path, path: Path) -> str:
    """Dotted module name of ``path`` relative to ``root``."""
    parts = list(path.relative_to(root).with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts) or path.stem
