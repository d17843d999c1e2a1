#!/usr/bin/env python3
"""
Synchronize shared JSON spec fixtures from the upstream repository.

Reads a YAML manifest (default .ci/json-specs.yml), resolves the upstream
commit, downloads every listed fixture and copies it into the local testdata
directory. The pull request itself is opened by CI; this tool can write its
description with --pr-body.

Usage:
  python3 scripts/sync_json_specs.py
  python3 scripts/sync_json_specs.py --check          # exit 1 if fixtures are stale
  python3 scripts/sync_json_specs.py --pr-body /tmp/pr.md
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import os
import pathlib
import re
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, List, Optional

import yaml

from .utils import ensure_directory, log_error, log_info, log_warn


DEFAULT_MANIFEST = ".ci/json-specs.yml"
USER_AGENT = "apm-agent-tools/1.0"

_PATCH_SHA_RE = re.compile(r"^From\s([0-9a-f]{40})\s", re.MULTILINE)


class ManifestError(RuntimeError):
    """The sync manifest is missing or malformed."""


class SyncError(RuntimeError):
    """Fetching or storing a fixture failed."""


@dataclasses.dataclass
class SyncManifest:
    repo: str
    branch: str
    path: str
    target_dir: str
    files: List[str]


@dataclasses.dataclass
class FileOutcome:
    name: str
    target: pathlib.Path
    status: str  # created | updated | unchanged


@dataclasses.dataclass
class SyncResult:
    sha: Optional[str]
    outcomes: List[FileOutcome] = dataclasses.field(default_factory=list)

    @property
    def changed(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.status != "unchanged"]


# ------------------------------- Manifest ---------------------------------- #


def _require_str(section: Dict[str, Any], key: str, where: str) -> str:
    value = section.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ManifestError(f"{where}: '{key}' must be a non-empty string")
    return value.strip()


def validate_manifest(data: Any, source: str = "<manifest>") -> SyncManifest:
    if not isinstance(data, dict):
        raise ManifestError(f"{source}: top level must be a mapping")
    upstream = data.get("upstream")
    if not isinstance(upstream, dict):
        raise ManifestError(f"{source}: 'upstream' section is required")
    repo = _require_str(upstream, "repo", f"{source}: upstream")
    if repo.count("/") != 1:
        raise ManifestError(f"{source}: upstream.repo must look like owner/name, got {repo!r}")
    branch = str(upstream.get("branch") or "main").strip()
    path = _require_str(upstream, "path", f"{source}: upstream").strip("/")
    target_dir = _require_str(data, "target_dir", source)

    files = data.get("files")
    if not isinstance(files, list) or not files:
        raise ManifestError(f"{source}: 'files' must be a non-empty list")
    names: List[str] = []
    for item in files:
        if not isinstance(item, str) or not item.strip():
            raise ManifestError(f"{source}: file entries must be non-empty strings")
        name = item.strip()
        if "/" in name or name in (".", ".."):
            raise ManifestError(f"{source}: file entry must be a plain file name: {name!r}")
        if name in names:
            raise ManifestError(f"{source}: duplicate file entry {name!r}")
        names.append(name)
    return SyncManifest(repo=repo, branch=branch, path=path, target_dir=target_dir, files=names)


def load_manifest(path: str) -> SyncManifest:
    manifest_path = pathlib.Path(path)
    if not manifest_path.exists():
        raise ManifestError(f"manifest not found: {path}")
    try:
        data = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ManifestError(f"{path}: invalid YAML: {exc}") from exc
    return validate_manifest(data, source=str(path))


# -------------------------------- Fetching --------------------------------- #


def fetch_bytes(url: str, timeout: int = 60) -> bytes:
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec - fixed upstream URLs
            return resp.read()
    except (urllib.error.URLError, OSError) as exc:
        raise SyncError(f"failed to fetch {url}: {exc}") from exc


def patch_url(manifest: SyncManifest) -> str:
    return f"https://github.com/{manifest.repo}/commit/{urllib.parse.quote(manifest.branch, safe='')}.patch"


def fixture_url(manifest: SyncManifest, name: str) -> str:
    quoted = urllib.parse.quote(f"{manifest.path}/{name}", safe="/")
    return f"https://raw.githubusercontent.com/{manifest.repo}/{urllib.parse.quote(manifest.branch, safe='')}/{quoted}"


def parse_patch_sha(patch_text: str) -> str:
    m = _PATCH_SHA_RE.search(patch_text)
    if not m:
        raise SyncError("no commit sha found in upstream patch")
    return m.group(1)


def resolve_upstream_commit(manifest: SyncManifest) -> str:
    """Commit sha at the head of the upstream branch, taken from its .patch view."""
    text = fetch_bytes(patch_url(manifest)).decode("utf-8", errors="replace")
    return parse_patch_sha(text)


# --------------------------------- Sync ------------------------------------ #


def fetch_fixtures(manifest: SyncManifest, verbose: bool = False) -> Dict[str, bytes]:
    """Download and JSON-check every fixture; raises before anything is stored."""
    fetched: Dict[str, bytes] = {}
    for name in manifest.files:
        url = fixture_url(manifest, name)
        if verbose:
            log_info(f"GET {url}")
        data = fetch_bytes(url)
        try:
            json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SyncError(f"{name}: upstream content is not valid JSON: {exc}") from exc
        fetched[name] = data
    return fetched


def sync_specs(manifest: SyncManifest, base: str = ".", check: bool = False, sha: Optional[str] = None, verbose: bool = False) -> SyncResult:
    """
    Download every fixture of ``manifest`` into ``<base>/<target_dir>``.

    All fixtures are fetched first; local files are only touched once every
    download succeeded. Files are only rewritten when their content differs.
    With ``check`` nothing is written and the result just reports what would
    change.
    """
    fetched = fetch_fixtures(manifest, verbose=verbose)

    target_root = pathlib.Path(base) / manifest.target_dir
    result = SyncResult(sha=sha)
    for name, data in fetched.items():
        target = target_root / name
        if target.exists():
            status = "unchanged" if target.read_bytes() == data else "updated"
        else:
            status = "created"
        if status != "unchanged" and not check:
            try:
                ensure_directory(target.parent)
                target.write_bytes(data)
            except OSError as exc:
                raise SyncError(f"failed to write {target}: {exc}") from exc
        result.outcomes.append(FileOutcome(name=name, target=target, status=status))
    return result


def render_pr_description(sha: str, repo: str) -> str:
    return (
        "### What\n"
        "APM agent specs automatic sync\n"
        "### Why\n"
        "*Changeset*\n"
        f"* https://github.com/{repo}/commit/{sha}\n"
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Synchronize JSON spec fixtures from the upstream repository")
    p.add_argument("--manifest", default=os.environ.get("JSON_SPECS_MANIFEST", DEFAULT_MANIFEST), help="YAML manifest listing the fixtures")
    p.add_argument("--base", default=".", help="Repo base directory; target_dir is relative to it")
    p.add_argument("--check", action="store_true", help="Only report stale fixtures, exit 1 if any")
    p.add_argument("--pr-body", default=None, help="Write the pull request description to this file")
    p.add_argument("--verbose", action="store_true", help="Verbose logs")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    manifest_path = args.manifest
    if not os.path.isabs(manifest_path):
        manifest_path = os.path.join(args.base, manifest_path)

    try:
        manifest = load_manifest(manifest_path)
        sha = resolve_upstream_commit(manifest)
        log_info(f"Upstream {manifest.repo}@{manifest.branch}: {sha}")
        result = sync_specs(manifest, base=args.base, check=args.check, sha=sha, verbose=args.verbose)
        if args.pr_body:
            pathlib.Path(args.pr_body).write_text(render_pr_description(sha, manifest.repo), encoding="utf-8")
    except (ManifestError, SyncError, OSError) as exc:
        log_error(str(exc))
        return 1

    for outcome in result.changed:
        log_info(f"{outcome.status}: {outcome.target}")
    if not result.changed:
        log_info("All fixtures are up to date")
    elif args.check:
        log_warn(f"{len(result.changed)} fixture(s) out of date")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
