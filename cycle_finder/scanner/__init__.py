"""Scanner registry and dispatcher."""

from __future__ import annotations

from pathlib import Path

from cycle_finder.collector.loader import DeclarationError
from cycle_finder.models import TypeDecl
from cycle_finder.scanner.base import BaseScanner
from cycle_finder.scanner.python_scanner import PythonScanner


def _get_scanners(skip_dirs: list[str] | None = None) -> list[BaseScanner]:
    return [PythonScanner(skip_dirs=skip_dirs)]


def scan_directory(
    directory: Path,
    skip_dirs: list[str] | None = None,
) -> list[TypeDecl]:
    """Scan a directory with all available scanners."""
    decls: list[TypeDecl] = []
    for scanner in _get_scanners(skip_dirs):
        decls.extend(scanner.scan_directory(directory))
    decls.sort(key=lambda d: d.name)
    return decls


def scan_path(path: Path, skip_dirs: list[str] | None = None) -> list[TypeDecl]:
    """Scan a single source file or a directory."""
    if path.is_dir():
        return scan_directory(path, skip_dirs)
    for scanner in _get_scanners(skip_dirs):
        if path.suffix in scanner.extensions:
            try:
                return scanner.scan_file(path)
            except (SyntaxError, UnicodeDecodeError) as e:
                raise DeclarationError(f"Cannot scan {path}: {e}") from e
    raise ValueError(f"No scanner for file: {path}")


__all__ = [
    "BaseScanner",
    "PythonScanner",
    "scan_directory",
    "scan_path",
]
