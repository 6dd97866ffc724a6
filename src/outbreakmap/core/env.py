"""
Project root and `.env` handling.

The API server, the CLI and pytest are started from different working directories, but the
cache directory and `scenario.path` are configured relative to the checkout. Paths resolve
against the project root, found in this order:
1) `OUTBREAKMAP_PROJECT_ROOT`,
2) the directory holding `OUTBREAKMAP_ENV_FILE`,
3) the nearest parent (of the cwd, then of this package) with a `.env`, a `.git`, or a
   `pyproject.toml` next to `src/`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


def _is_project_root(path: Path) -> bool:
    return (
        (path / ".env").is_file()
        or (path / ".git").exists()
        or ((path / "pyproject.toml").is_file() and (path / "src").is_dir())
    )


def find_project_root(start: Path) -> Path | None:
    start = start.resolve()
    for candidate in (start, *start.parents):
        if _is_project_root(candidate):
            return candidate
    return None


@lru_cache
def get_project_root() -> Path:
    """Best-guess checkout directory (cached for the process)."""
    explicit_root = os.getenv("OUTBREAKMAP_PROJECT_ROOT")
    if explicit_root:
        return Path(explicit_root).expanduser().resolve()
    env_file = os.getenv("OUTBREAKMAP_ENV_FILE")
    if env_file:
        return Path(env_file).expanduser().resolve().parent
    return find_project_root(Path.cwd()) or find_project_root(Path(__file__).parent) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project `.env` once; variables already in the environment win."""
    explicit = os.getenv("OUTBREAKMAP_ENV_FILE")
    env_path = Path(explicit).expanduser().resolve() if explicit else get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Absolute paths pass through; relative ones hang off the project root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
