#!/usr/bin/env python3
"""
Generate scripts/Dockerfile-testing: a Dockerfile that explicitly runs
"go get" for each external import of the module.

Usage:
  python3 scripts/gendockerfile.py                 # write scripts/Dockerfile-testing
  python3 scripts/gendockerfile.py -d              # diff against the checked-in file (CI)
  python3 scripts/gendockerfile.py -base ../apm-agent-go -o Dockerfile-testing
  go list -json ./... ./vendor/... > pkgs.json && \
    python3 scripts/gendockerfile.py --from-json pkgs.json
"""

from __future__ import annotations

import argparse
import os
import pathlib
from typing import Iterable, Optional

from .imports import collect_external_imports
from .packages import PackageListError, PackageRecord, go_list_packages, load_package_records
from .render import DEFAULT_IMAGE, DEFAULT_WORKDIR, render_dockerfile
from .utils import get_env_bool, log_error, log_info, run_command


DEFAULT_OUTPUT = "Dockerfile-testing"


class GenerateError(RuntimeError):
    """Rendering, writing or diffing the generated Dockerfile failed."""


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Generate a Dockerfile running 'go get' for each external import")
    p.add_argument("-base", "--base", default=os.environ.get("GENDOCKERFILE_BASE", "."), help="base directory of the repo, relative to the working directory")
    p.add_argument("-o", "--output", default=DEFAULT_OUTPUT, help="output file, relative to <base>/scripts")
    p.add_argument("-d", "--diff", action="store_true", default=get_env_bool("GENDOCKERFILE_DIFF"), help="diff file against output file instead of writing")
    p.add_argument("--go", default=os.environ.get("GO", "go"), help="go binary used to list packages")
    p.add_argument("--from-json", default=None, help="read saved 'go list -json' output instead of running go")
    p.add_argument("--image", default=os.environ.get("GENDOCKERFILE_IMAGE", DEFAULT_IMAGE), help="base image for FROM")
    p.add_argument("--workdir", default=os.environ.get("GENDOCKERFILE_WORKDIR", DEFAULT_WORKDIR), help="WORKDIR and ADD target inside the image")
    p.add_argument("--verbose", action="store_true", help="Verbose logs")
    return p


def output_path(base: str, output: str) -> pathlib.Path:
    return pathlib.Path(base) / "scripts" / output


def generate(packages: Iterable[PackageRecord], image: str = DEFAULT_IMAGE, workdir: str = DEFAULT_WORKDIR) -> str:
    """Consume ``packages`` completely and return the rendered Dockerfile."""
    return render_dockerfile(collect_external_imports(packages), image=image, workdir=workdir)


def write_dockerfile(path: pathlib.Path, text: str) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
    except OSError as exc:
        raise GenerateError(f"failed to write {path}: {exc}") from exc


def diff_dockerfile(path: pathlib.Path, text: str, diff: str = "diff") -> None:
    """
    Compare ``path`` with ``text`` using ``diff -c``; differences are printed
    to stdout by diff itself.

    Raises:
        GenerateError: If diff cannot be started or reports a difference.
    """
    try:
        code = run_command([diff, "-c", str(path), "-"], input_text=text)
    except OSError as exc:
        raise GenerateError(f"failed to run {diff!r}: {exc}") from exc
    if code == 1:
        raise GenerateError(f"{path} is out of date, regenerate it with gendockerfile")
    if code != 0:
        raise GenerateError(f"{diff} exited with code {code}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    out_file = output_path(args.base, args.output)
    try:
        if args.from_json:
            packages: Iterable[PackageRecord] = load_package_records(args.from_json)
        else:
            packages = go_list_packages(args.base, go=args.go, verbose=args.verbose)
        # Enumeration must finish before the output file is touched
        text = generate(packages, image=args.image, workdir=args.workdir)
        if args.diff:
            diff_dockerfile(out_file, text)
        else:
            write_dockerfile(out_file, text)
    except (PackageListError, GenerateError) as exc:
        log_error(str(exc))
        return 1

    if args.verbose:
        log_info(f"{out_file}: {'up to date' if args.diff else 'written'}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
