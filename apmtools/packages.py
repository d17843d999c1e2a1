"""Package metadata enumeration via ``go list -json``.

``go list -json`` prints one pretty-printed JSON object per package, simply
concatenated. The helpers here decode that stream lazily into
:class:`PackageRecord` values so the classification code never has to know
where the records came from.
"""

from __future__ import annotations

import dataclasses
import json
import posixpath
import subprocess
from typing import IO, Any, Dict, Iterator, List

from .utils import log_info, log_warn


_CHUNK_SIZE = 64 * 1024


class PackageListError(RuntimeError):
    """Package enumeration failed: the lister did not start or emitted bad data."""


@dataclasses.dataclass(frozen=True)
class PackageRecord:
    import_path: str
    imports: List[str] = dataclasses.field(default_factory=list)
    test_imports: List[str] = dataclasses.field(default_factory=list)
    xtest_imports: List[str] = dataclasses.field(default_factory=list)

    def all_imports(self) -> List[str]:
        """Build-time imports followed by in-package and external test imports."""
        return [*self.imports, *self.test_imports, *self.xtest_imports]

    @classmethod
    def from_json(cls, data: Any) -> "PackageRecord":
        if not isinstance(data, dict):
            raise PackageListError(f"package record must be a JSON object, got {type(data).__name__}")
        import_path = data.get("ImportPath")
        if not isinstance(import_path, str) or not import_path:
            raise PackageListError("package record without ImportPath")
        return cls(
            import_path=import_path,
            imports=_string_list(data, "Imports", import_path),
            test_imports=_string_list(data, "TestImports", import_path),
            xtest_imports=_string_list(data, "XTestImports", import_path),
        )


def _string_list(data: Dict[str, Any], key: str, import_path: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PackageListError(f"{import_path}: field {key} must be a list of strings")
    return list(value)


def iter_json_values(stream: IO[str]) -> Iterator[Any]:
    """Yield JSON values from a stream of concatenated (or newline separated) documents."""
    decoder = json.JSONDecoder()
    buf = ""
    eof = False
    while True:
        buf = buf.lstrip(" \t\r\n")
        if buf:
            try:
                value, end = decoder.raw_decode(buf)
            except json.JSONDecodeError as exc:
                if eof:
                    raise PackageListError(f"malformed package record: {exc}") from exc
                # Probably an incomplete object, read more
                value, end = None, -1
            if end != -1:
                buf = buf[end:]
                yield value
                continue
        elif eof:
            return
        chunk = stream.read(_CHUNK_SIZE)
        if not chunk:
            eof = True
        else:
            buf += chunk


def iter_package_records(stream: IO[str]) -> Iterator[PackageRecord]:
    for value in iter_json_values(stream):
        yield PackageRecord.from_json(value)


def rel_pattern(base: str, pattern: str) -> str:
    """Package pattern relative to ``base``, in the form the go tool expects."""
    if base == ".":
        return "./" + pattern
    return posixpath.normpath(posixpath.join(base, pattern))


def go_list_command(base: str, go: str = "go") -> List[str]:
    return [go, "list", "-json", rel_pattern(base, "..."), rel_pattern(base, "vendor/...")]


def go_list_packages(base: str = ".", go: str = "go", verbose: bool = False) -> Iterator[PackageRecord]:
    """
    Enumerate the packages under ``base`` and its vendor tree.

    Records are yielded as they are decoded. The stream is finite and can be
    iterated only once. Stderr of the go tool is passed through unchanged.

    Raises:
        PackageListError: If the go tool cannot be started or emits an
            undecodable record.
    """
    cmd = go_list_command(base, go=go)
    if verbose:
        log_info("$ " + " ".join(cmd))
    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, text=True, encoding="utf-8")
    except OSError as exc:
        raise PackageListError(f"failed to start {cmd[0]!r}: {exc}") from exc

    assert proc.stdout is not None
    count = 0
    try:
        for record in iter_package_records(proc.stdout):
            count += 1
            yield record
    finally:
        proc.stdout.close()
        code = proc.wait()

    # go list reports per-package errors with a nonzero status but still emits
    # every record, so this is not fatal.
    if code != 0:
        log_warn(f"{' '.join(cmd[:3])} exited with code {code}")
    if verbose:
        log_info(f"Decoded {count} package records")


def load_package_records(path: str) -> List[PackageRecord]:
    """Read records previously saved with ``go list -json > file``."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return list(iter_package_records(f))
    except OSError as exc:
        raise PackageListError(f"failed to read {path}: {exc}") from exc


__all__ = [
    "PackageListError",
    "PackageRecord",
    "iter_json_values",
    "iter_package_records",
    "rel_pattern",
    "go_list_command",
    "go_list_packages",
    "load_package_records",
]