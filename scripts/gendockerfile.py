#!/usr/bin/env python3
"""Regenerate (or with -d, verify) scripts/Dockerfile-testing.

Run from the repo root:
    python3 scripts/gendockerfile.py [-d] [-base DIR] [-o FILE]
"""

from __future__ import annotations

import pathlib
import sys

_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from apmtools.gendockerfile import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
