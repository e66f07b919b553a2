"""
Project manifest (``flowspec.toml``).

Example::

    [project]
    name = "shopping-app"

    [flows]
    patterns = ["*.narrative.ts", "*.flow.ts"]
    exclude = ["node_modules"]

    [schema]
    output = "schema.json"

    [specs]
    separator = " → "

Flow files are found through this explicit list of patterns rather than
by loading modules at runtime.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .errors import FlowSpecError
from .specs import DEFAULT_SEPARATOR

MANIFEST_FILE = "flowspec.toml"

DEFAULT_PATTERNS = ["*.narrative.ts", "*.flow.ts"]
DEFAULT_EXCLUDE = ["node_modules", ".git", "dist"]


@dataclass
class FlowsConfig:
    """Where flow files live."""

    patterns: list[str] = field(default_factory=lambda: list(DEFAULT_PATTERNS))
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))


@dataclass
class SchemaConfig:
    """Schema document output."""

    output: str = "schema.json"
    id_prefix: str = "AUTO-"


@dataclass
class SpecsConfig:
    """Specification flattening options."""

    separator: str = DEFAULT_SEPARATOR


@dataclass
class ProjectManifest:
    name: str = "flowspec-project"
    flows: FlowsConfig = field(default_factory=FlowsConfig)
    schema: SchemaConfig = field(default_factory=SchemaConfig)
    specs: SpecsConfig = field(default_factory=SpecsConfig)


def load_manifest(path: Path) -> ProjectManifest:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise FlowSpecError(f"Invalid manifest {path}: {e}") from e

    project = data.get("project", {})
    flows_data = data.get("flows", {})
    schema_data = data.get("schema", {})
    specs_data = data.get("specs", {})

    return ProjectManifest(
        name=project.get("name", "flowspec-project"),
        flows=FlowsConfig(
            patterns=flows_data.get("patterns", list(DEFAULT_PATTERNS)),
            exclude=flows_data.get("exclude", list(DEFAULT_EXCLUDE)),
        ),
        schema=SchemaConfig(
            output=schema_data.get("output", "schema.json"),
            id_prefix=schema_data.get("id_prefix", "AUTO-"),
        ),
        specs=SpecsConfig(separator=specs_data.get("separator", DEFAULT_SEPARATOR)),
    )


def load_project_manifest(root: Path) -> ProjectManifest:
    """Load ``flowspec.toml`` from a directory, or defaults if there is none."""
    path = root / MANIFEST_FILE
    if not path.exists():
        return ProjectManifest()
    return load_manifest(path)


def discover_flow_files(flow_dir: Path, config: FlowsConfig) -> list[Path]:
    """
    Resolve the configured patterns under ``flow_dir``.

    Files come out grouped by pattern (in manifest order), sorted within a
    pattern, each file at most once.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for pattern in config.patterns:
        for path in sorted(flow_dir.rglob(pattern)):
            relative = path.relative_to(flow_dir)
            if any(part in config.exclude for part in relative.parts):
                continue
            if path.is_file() and path not in seen:
                seen.add(path)
                found.append(path)
    return found
