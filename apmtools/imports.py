"""Classification of Go import paths into external and internal ones."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .packages import PackageRecord


def is_external(import_path: str) -> bool:
    """
    Report whether ``import_path`` refers to an external import: one outside
    of the standard library or the vendor directory.

    The first path element of an external import looks like a domain name,
    e.g. ``github.com/pkg/errors``. Single element paths (``fmt``) never are.
    """
    slash = import_path.find("/")
    if slash == -1:
        return False
    return "." in import_path[:slash]


class ImportTable:
    """
    Import path -> "is external" mapping built from package records.

    A scanned package is part of the module and always internal, even if it
    was first seen as an import. Paths seen only as imports keep their first
    classification.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, bool] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, import_path: object) -> bool:
        return import_path in self._entries

    def __iter__(self) -> Iterator[Tuple[str, bool]]:
        return iter(self._entries.items())

    def get(self, import_path: str) -> Optional[bool]:
        return self._entries.get(import_path)

    def _record(self, import_path: str, external: bool) -> None:
        if import_path not in self._entries:
            self._entries[import_path] = external

    def add_package(self, pkg: PackageRecord) -> None:
        self._entries[pkg.import_path] = False
        for import_path in pkg.all_imports():
            self._record(import_path, is_external(import_path))

    def add_packages(self, packages: Iterable[PackageRecord]) -> "ImportTable":
        for pkg in packages:
            self.add_package(pkg)
        return self

    def external_imports(self) -> List[str]:
        """Sorted external import paths."""
        return sorted(path for path, external in self._entries.items() if external)


def collect_external_imports(packages: Iterable[PackageRecord]) -> List[str]:
    return ImportTable().add_packages(packages).external_imports()


__all__ = ["is_external", "ImportTable", "collect_external_imports"]
