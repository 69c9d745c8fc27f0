"""
Buildpack Engine Environment Composer

Layers record environment-variable mutations instead of writing the process
environment directly. Each layer carries one Environment per scope:

- build: visible to the build phases of later buildpacks
- launch: visible to the final runtime process

Operations are applied in layer acquisition order and, within a layer, in
recording order:

- default: set only if the variable is not already present
- override: replace any prior value
- prepend/append: like override when unset or empty, otherwise join with
  the separator exactly once

On disk each variable has at most one file per kind in
``<layer>/env.<scope>/``, named ``<NAME>.<kind>``, whose content is the
literal value. A non-empty separator is stored next to it in
``<NAME>.delim``. Several operations on one variable are folded into that
form when written.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvKind, EnvScope, DELIM_SUFFIX, DEFAULT_SEPARATOR
from .exceptions import InternalError

logger = logging.getLogger(__name__)

_JOIN_KINDS = (EnvKind.PREPEND, EnvKind.APPEND)
# per-variable order in which persisted files apply
_APPLY_ORDER = (EnvKind.OVERRIDE, EnvKind.DEFAULT, EnvKind.PREPEND, EnvKind.APPEND)


class EnvOperation(BaseModel):
    """One recorded mutation of one variable."""

    name: str
    kind: EnvKind
    value: str
    separator: str = DEFAULT_SEPARATOR

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not v or "=" in v or "/" in v or "\0" in v:
            raise ValueError(f"Invalid environment variable name: {v!r}")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> str:
        # Ports and flags are commonly passed as ints/bools
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v)

    def apply(self, env: Dict[str, str]) -> None:
        """Apply this operation to ``env`` in place."""
        current = env.get(self.name)
        if self.kind == EnvKind.DEFAULT:
            if self.name not in env:
                env[self.name] = self.value
        elif self.kind == EnvKind.OVERRIDE:
            env[self.name] = self.value
        elif self.kind == EnvKind.PREPEND:
            env[self.name] = f"{self.value}{self.separator}{current}" if current else self.value
        elif self.kind == EnvKind.APPEND:
            env[self.name] = f"{current}{self.separator}{self.value}" if current else self.value


class Environment(BaseModel):
    """Ordered environment operations of one layer in one scope."""

    scope: EnvScope
    operations: List[EnvOperation] = Field(default_factory=list)

    def _record(self, name: str, kind: EnvKind, value: Any, separator: str = DEFAULT_SEPARATOR) -> None:
        op = EnvOperation(name=name, kind=kind, value=value, separator=separator)
        logger.debug(f"[{self.scope.value}] {kind.value} {name}={op.value!r}")
        self.operations.append(op)

    def default(self, name: str, value: Any) -> None:
        self._record(name, EnvKind.DEFAULT, value)

    def override(self, name: str, value: Any) -> None:
        self._record(name, EnvKind.OVERRIDE, value)

    def prepend(self, name: str, separator: str, value: Any) -> None:
        self._record(name, EnvKind.PREPEND, value, separator)

    def append(self, name: str, separator: str, value: Any) -> None:
        self._record(name, EnvKind.APPEND, value, separator)

    def apply(self, env: Dict[str, str]) -> Dict[str, str]:
        for op in self.operations:
            op.apply(env)
        return env

    def __len__(self) -> int:
        return len(self.operations)

    # --- persistence ---

    def write(self, layer_path: Path) -> Path:
        """
        Write operations as env files under ``layer_path/env.<scope>``

        Operations are folded per variable first (see :func:`fold_operations`)
        so reading the files back composes to the same values. Files left by
        an earlier build for the written variables are replaced.

        Returns:
            Path: the env directory

        Raises:
            InternalError: a variable's operations have no file representation
        """
        env_dir = Path(layer_path) / self.scope.dirname
        if not self.operations:
            return env_dir
        folded = fold_operations(self.operations)
        env_dir.mkdir(parents=True, exist_ok=True)
        for name in {op.name for op in folded}:
            for suffix in [k.value for k in EnvKind] + [DELIM_SUFFIX]:
                (env_dir / f"{name}.{suffix}").unlink(missing_ok=True)
        for op in folded:
            (env_dir / f"{op.name}.{op.kind.value}").write_text(op.value, encoding="utf-8")
            if op.kind in _JOIN_KINDS and op.separator:
                (env_dir / f"{op.name}.{DELIM_SUFFIX}").write_text(op.separator, encoding="utf-8")
        logger.debug(
            f"Wrote {len(folded)} {self.scope.value} env file(s) for "
            f"{len(self.operations)} operation(s) to {env_dir}"
        )
        return env_dir

    @classmethod
    def read(cls, layer_path: Path, scope: EnvScope) -> "Environment":
        """
        Read env files back from ``layer_path/env.<scope>``

        Each variable's files apply in the order override, default, prepend,
        append; ``<NAME>.delim`` is the separator of both joins. A file
        without a known kind suffix is an override.
        """
        env = cls(scope=scope)
        env_dir = Path(layer_path) / scope.dirname
        if not env_dir.is_dir():
            return env

        kinds = {k.value: k for k in EnvKind}
        found: Dict[str, Dict[EnvKind, str]] = {}
        for path in sorted(p for p in env_dir.iterdir() if p.is_file()):
            name, _, suffix = path.name.rpartition(".")
            if suffix == DELIM_SUFFIX and name:
                continue
            if not name or suffix not in kinds:
                name, kind = path.name, EnvKind.OVERRIDE
            else:
                kind = kinds[suffix]
            found.setdefault(name, {})[kind] = path.read_text(encoding="utf-8")

        for name, values in found.items():
            delim = env_dir / f"{name}.{DELIM_SUFFIX}"
            separator = delim.read_text(encoding="utf-8") if delim.is_file() else DEFAULT_SEPARATOR
            for kind in _APPLY_ORDER:
                if kind in values:
                    env.operations.append(EnvOperation(
                        name=name,
                        kind=kind,
                        value=values[kind],
                        separator=separator if kind in _JOIN_KINDS else DEFAULT_SEPARATOR,
                    ))
        return env


def fold_operations(operations: Iterable[EnvOperation]) -> List[EnvOperation]:
    """
    Collapse recorded operations to at most one per (name, kind)

    The result, applied per variable in the order override, default,
    prepend, append, gives the same value as the recorded sequence for any
    starting environment:

    - an override absorbs everything recorded after it into its value
    - a default only counts as the variable's first operation
    - repeated prepends (appends) join into one value with their separator

    Raises:
        InternalError: prepends and appends of one variable use different
            separators; the env file format stores one separator per variable
    """
    states: Dict[str, Dict[EnvKind, EnvOperation]] = {}
    for op in operations:
        state = states.setdefault(op.name, {})
        override = state.get(EnvKind.OVERRIDE)
        if op.kind == EnvKind.OVERRIDE:
            state.clear()
            state[EnvKind.OVERRIDE] = op
        elif override is not None:
            current = {op.name: override.value}
            op.apply(current)
            state[EnvKind.OVERRIDE] = override.model_copy(update={"value": current[op.name]})
        elif op.kind == EnvKind.DEFAULT:
            if not state:
                state[EnvKind.DEFAULT] = op
        else:
            _fold_join(state, op)
    return [state[kind] for state in states.values() for kind in _APPLY_ORDER if kind in state]


def _fold_join(state: Dict[EnvKind, EnvOperation], op: EnvOperation) -> None:
    for kind in _JOIN_KINDS:
        other = state.get(kind)
        if other is not None and other.separator != op.separator:
            raise InternalError(
                f"Cannot persist {op.name}: {other.kind.value} with separator {other.separator!r} "
                f"and {op.kind.value} with separator {op.separator!r}"
            )
    previous = state.get(op.kind)
    if previous is None:
        state[op.kind] = op
    elif op.kind == EnvKind.PREPEND:
        state[op.kind] = op.model_copy(update={"value": f"{op.value}{op.separator}{previous.value}"})
    else:
        state[op.kind] = op.model_copy(update={"value": f"{previous.value}{op.separator}{op.value}"})


def compose(base: Optional[Mapping[str, str]], environments: Iterable[Environment]) -> Dict[str, str]:
    """
    Compose environments on top of a base environment

    Args:
        base: ambient environment snapshot (not modified)
        environments: environments in layer acquisition order

    Returns:
        Dict[str, str]: the resulting environment
    """
    result = dict(base or {})
    for environment in environments:
        environment.apply(result)
    return result


def compose_layers_dir(base: Optional[Mapping[str, str]], layer_paths: Iterable[Path], scope: EnvScope) -> Dict[str, str]:
    """Compose the persisted ``scope`` environments of the given layer directories, in order."""
    return compose(base, (Environment.read(path, scope) for path in layer_paths))
