"""
Buildpack Engine Layers

A layer is a named directory under the layers root plus a sibling
``<name>.toml`` metadata file:

    [types]
    build = true
    cache = true
    launch = false

    [metadata]
    cache_signature = "..."

The metadata file of the previous build (restored by the lifecycle) is read
when the layer is acquired and overwritten when the build phase succeeds.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set

import toml
from pydantic import BaseModel, ConfigDict, Field

from . import constants
from .constants import LayerFlag, EnvScope
from .environment import Environment
from .exceptions import LayerError

logger = logging.getLogger(__name__)


def validate_layer_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\\" in name or "\0" in name:
        raise LayerError(f"Invalid layer name: {name!r}")
    if name in constants.RESERVED_LAYER_NAMES:
        raise LayerError(f"Layer name {name!r} is reserved")
    return name


class Layer(BaseModel):
    """
    Holds one layer of build output for the buildpack that acquired it.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    path: Path
    flags: Set[LayerFlag] = Field(default_factory=set)

    # metadata table restored from the previous build, read-only
    previous_metadata: Dict[str, Any] = Field(default_factory=dict)
    # metadata table written at the end of this build
    metadata: Dict[str, Any] = Field(default_factory=dict)

    build_env: Environment = Field(default_factory=lambda: Environment(scope=EnvScope.BUILD))
    launch_env: Environment = Field(default_factory=lambda: Environment(scope=EnvScope.LAUNCH))

    @property
    def metadata_path(self) -> Path:
        return self.path.parent / f"{self.name}{constants.LAYER_METADATA_SUFFIX}"

    @property
    def build(self) -> bool:
        return LayerFlag.BUILD in self.flags

    @property
    def cache(self) -> bool:
        return LayerFlag.CACHE in self.flags

    @property
    def launch(self) -> bool:
        return LayerFlag.LAUNCH in self.flags

    @property
    def previous_signature(self) -> Optional[str]:
        return self.previous_metadata.get(constants.CACHE_SIGNATURE_KEY) or None

    @property
    def signature(self) -> Optional[str]:
        return self.metadata.get(constants.CACHE_SIGNATURE_KEY)

    @signature.setter
    def signature(self, value: str) -> None:
        self.metadata[constants.CACHE_SIGNATURE_KEY] = value

    def environment(self, scope: EnvScope) -> Environment:
        return self.build_env if scope == EnvScope.BUILD else self.launch_env

    def add_flags(self, flags: Iterable[LayerFlag]) -> None:
        self.flags.update(LayerFlag(f) for f in flags)

    def clear(self) -> None:
        """Remove everything in the layer directory and recreate it empty."""
        if self.path.exists():
            shutil.rmtree(self.path)
        self.path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Cleared layer '{self.name}' at {self.path}")

    def to_toml(self) -> Dict[str, Any]:
        return {
            constants.LAYER_TYPES_KEY: {flag.value: flag in self.flags for flag in LayerFlag},
            constants.LAYER_METADATA_KEY: dict(self.metadata),
        }

    def persist(self) -> None:
        """Write ``<name>.toml`` and the env directories of both scopes."""
        self.path.mkdir(parents=True, exist_ok=True)
        self.metadata_path.write_text(toml.dumps(self.to_toml()), encoding="utf-8")
        self.build_env.write(self.path)
        self.launch_env.write(self.path)
        logger.debug(
            f"Persisted layer '{self.name}' "
            f"(flags: {sorted(f.value for f in self.flags)}, "
            f"build env: {len(self.build_env)}, launch env: {len(self.launch_env)})"
        )


def read_layer_metadata(metadata_path: Path) -> Dict[str, Any]:
    """
    Read a previous build's layer metadata file

    Returns:
        Dict[str, Any]: parsed TOML document, empty if the file does not exist
    """
    if not metadata_path.exists():
        return {}
    try:
        return toml.loads(metadata_path.read_text(encoding="utf-8"))
    except (OSError, toml.TomlDecodeError) as e:
        raise LayerError(f"Reading layer metadata {metadata_path}: {e}") from e


def open_layer(layers_dir: Path, name: str, flags: Iterable[LayerFlag] = ()) -> Layer:
    """
    Create the layer directory and restore its previous metadata

    Args:
        layers_dir: root directory of this buildpack's layers
        name: layer name
        flags: role flags

    Returns:
        Layer
    """
    validate_layer_name(name)
    path = Path(layers_dir) / name
    path.mkdir(parents=True, exist_ok=True)
    layer = Layer(name=name, path=path)
    layer.add_flags(flags)
    doc = read_layer_metadata(layer.metadata_path)
    previous = doc.get(constants.LAYER_METADATA_KEY, {})
    if not isinstance(previous, dict):
        raise LayerError(f"Layer '{name}' metadata table is not a table: {previous!r}")
    layer.previous_metadata = previous
    if previous:
        logger.debug(f"Restored metadata for layer '{name}': {previous}")
    return layer


def write_launch_metadata(layers_dir: Path, processes: Iterable[Any]) -> Optional[Path]:
    """Write ``launch.toml`` with one ``[[processes]]`` table per process."""
    entries = [p.model_dump() for p in processes]
    if not entries:
        return None
    path = Path(layers_dir) / constants.LAUNCH_METADATA_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(toml.dumps({"processes": entries}), encoding="utf-8")
    logger.debug(f"Wrote {len(entries)} launch process(es) to {path}")
    return path
