#!/usr/bin/env python3
"""Mirror the shared JSON spec fixtures listed in .ci/json-specs.yml."""

from __future__ import annotations

import pathlib
import sys

_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from apmtools.specsync import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
