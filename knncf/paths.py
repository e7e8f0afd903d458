from __future__ import annotations

from pathlib import Path

_ROOT_MARKERS = ("config.yaml", "pyproject.toml", ".git")


def resolve_path(base: Path, p: Path | str) -> Path:
    p_path = Path(p)
    if not p_path.is_absolute():
        p_path = base / p_path
    return p_path.resolve()


def get_repo_root() -> Path:
    """Return repo root: the nearest ancestor of the cwd, then of this file, holding a root marker."""
    for start in (Path.cwd().resolve(), Path(__file__).resolve().parent):
        for candidate in (start, *start.parents):
            if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
                return candidate

    raise FileNotFoundError(f"Could not locate repo root (expected one of {list(_ROOT_MARKERS)}).")
