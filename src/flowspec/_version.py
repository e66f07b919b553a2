"""Version lookup for flowspec."""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

# src/flowspec/_version.py -> repository root
_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def get_version() -> str:
    """Installed distribution version, or the source checkout's pyproject version."""
    try:
        return version("flowspec")
    except PackageNotFoundError:
        pass
    if _PYPROJECT.is_file():
        with _PYPROJECT.open("rb") as f:
            return tomllib.load(f).get("project", {}).get("version", "0.0.0")
    return "0.0.0"
