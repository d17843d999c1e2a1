"""Developer tooling for the APM Go agent repository (apmtools)."""

from .imports import ImportTable, collect_external_imports, is_external  # noqa: F401
from .packages import (  # noqa: F401
    PackageListError,
    PackageRecord,
    go_list_packages,
)
from .render import render_dockerfile  # noqa: F401

__all__ = [
    "ImportTable",
    "PackageListError",
    "PackageRecord",
    "collect_external_imports",
    "go_list_packages",
    "is_external",
    "render_dockerfile",
]
