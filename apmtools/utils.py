#!/usr/bin/env python3
from __future__ import annotations

import os
import pathlib
import subprocess
import sys
from typing import Dict, List, Optional


def log_info(msg: str) -> None:
    """Информационное сообщение (stdout)."""
    print(f"[INFO] {msg}")


def log_warn(msg: str) -> None:
    """Предупреждение (stderr, чтобы не смешивать с выводом diff)."""
    print(f"[WARN] {msg}", file=sys.stderr)


def log_error(msg: str) -> None:
    """Ошибка (stderr)."""
    print(f"[ERROR] {msg}", file=sys.stderr)


def run_command(
    cmd: List[str],
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    input_text: Optional[str] = None,
) -> int:
    """
    Run a command attached to the current stdout/stderr and return its exit code.

    Args:
        cmd: Command and arguments
        cwd: Working directory
        env: Environment variables
        input_text: Optional text fed to the command's stdin

    Returns:
        Exit code of the command

    Raises:
        FileNotFoundError: If the executable does not exist
    """
    sys.stdout.flush()
    result = subprocess.run(cmd, cwd=cwd, env=env, input=input_text, text=True, check=False)
    return result.returncode


def get_env_bool(name: str, default: bool = False) -> bool:
    """
    Получить булево значение из переменной окружения.

    Args:
        name: Имя переменной окружения
        default: Значение по умолчанию

    Returns:
        Булево значение
    """
    val = os.environ.get(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def ensure_directory(path: pathlib.Path) -> pathlib.Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
