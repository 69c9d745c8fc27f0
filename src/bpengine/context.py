"""
Buildpack Engine Context

The Context is the handle passed to a plugin's detect or build function. It
is created once per phase from an environment snapshot and root paths, and
holds everything the phase accumulates: acquired layers, launch processes and
log output.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from .cache import check_cache
from .config import PhaseSettings
from .constants import Attribution, LayerFlag
from .datacls import ExecResult, Process
from .exceptions import InternalError, PhaseExit, UserError
from .execution import Executor, SubprocessExecutor, MockExecutor, execute, load_mock_table
from .layers import Layer, open_layer

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 20


class Context(BaseModel):
    """
    Holds the per-phase state handed to detect and build functions.

    The handle is frozen; its layer, process and output collections grow
    while the phase runs and are read by the phase driver afterwards.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    settings: PhaseSettings
    env: Dict[str, str] = Field(default_factory=dict)
    executor: Executor = Field(default_factory=SubprocessExecutor)

    layers: Dict[str, Layer] = Field(default_factory=dict)
    processes: List[Process] = Field(default_factory=list)
    output: List[str] = Field(default_factory=list)

    # --- roots ---

    @property
    def application_root(self) -> Path:
        return self.settings.application_root

    @property
    def buildpack_root(self) -> Optional[Path]:
        return self.settings.buildpack_root

    @property
    def layers_dir(self) -> Optional[Path]:
        return self.settings.layers_dir

    @property
    def debug(self) -> bool:
        return self.settings.debug

    # --- environment and files ---

    def getenv(self, name: str, default: str = "") -> str:
        return self.env.get(name, default)

    def has_env(self, name: str) -> bool:
        return name in self.env

    def file_exists(self, *parts: Union[str, Path]) -> bool:
        """Whether a path relative to the application root exists."""
        return self.application_root.joinpath(*parts).exists()

    # --- output ---

    def _emit(self, level: int, msg: str, args: tuple) -> str:
        message = msg % args if args else msg
        self.output.append(message)
        logger.log(level, message)
        return message

    def logf(self, msg: str, *args) -> None:
        self._emit(logging.INFO, msg, args)

    def debugf(self, msg: str, *args) -> None:
        if self.debug:
            self._emit(logging.DEBUG, msg, args)

    def warnf(self, msg: str, *args) -> None:
        self._emit(logging.WARNING, "Warning: " + msg, args)

    def cache_hit(self, layer_name: str) -> None:
        self.logf("Cache hit for layer %s", layer_name)

    def cache_miss(self, layer_name: str) -> None:
        self.logf("Cache miss for layer %s", layer_name)

    # --- layers ---

    def layer(self, name: str, *flags: LayerFlag) -> Layer:
        """
        Acquire a layer by name

        Repeated acquisition within one build returns the same Layer; extra
        flags are added to it.

        Args:
            name: layer name, unique for this buildpack
            flags: any of LayerFlag.BUILD, LayerFlag.CACHE, LayerFlag.LAUNCH

        Returns:
            Layer
        """
        if name in self.layers:
            layer = self.layers[name]
            layer.add_flags(flags)
            return layer
        if self.layers_dir is None:
            raise InternalError(f"Cannot acquire layer '{name}': no layers directory configured")
        layer = open_layer(self.layers_dir, name, flags)
        self.layers[name] = layer
        logger.debug(f"Acquired layer '{name}' at {layer.path}")
        return layer

    def clear_layer(self, layer: Layer) -> None:
        layer.clear()

    def check_cache(
        self,
        layer: Layer,
        tokens: Iterable[str] = (),
        files: Iterable[Union[str, Path]] = (),
    ) -> bool:
        """Compare the layer's previous signature with one over ``tokens`` and ``files``.

        Relative files are resolved against the application root.
        """
        return check_cache(layer, tokens, files, base_dir=self.application_root)

    # --- launch ---

    def add_process(self, process_type: str, command: Sequence[str], default: bool = False) -> Process:
        process = Process(type=process_type, command=list(command), default=default)
        self.processes.append(process)
        logger.debug(f"Added {process_type} process: {' '.join(command)}")
        return process

    def add_web_process(self, command: Sequence[str]) -> Process:
        return self.add_process("web", command, default=True)

    # --- exec ---

    def exec(
        self,
        command: Union[str, Sequence[str]],
        attribution: Attribution = Attribution.INTERNAL,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = False,
    ) -> ExecResult:
        """
        Run a command in the application root with the phase environment

        Args:
            command: argv list or whitespace separated string
            attribution: controls what the end user sees
            cwd: working directory, defaults to the application root
            env: variables added on top of the phase environment
            check: raise on non-zero exit instead of returning

        Returns:
            ExecResult
        """
        child_env = dict(self.env)
        if env:
            child_env.update(env)
        result = execute(
            self.executor, command, attribution,
            cwd=cwd or self.application_root,
            env=child_env,
            output=self.output,
            record_debug=self.debug,
        )
        if check and not result.ok:
            tail = "\n".join(result.combined.rstrip().splitlines()[-_OUTPUT_TAIL:])
            message = f'"{result.command_line}" failed with exit code {result.exit_code}'
            if tail:
                message = f"{message}:\n{tail}"
            if Attribution(attribution) == Attribution.INTERNAL:
                raise InternalError(message)
            raise UserError(message)
        return result

    # --- control flow ---

    def exit(self, code: int, error: Optional[BaseException] = None) -> None:
        """Stop the phase immediately with ``code``; no layers are persisted."""
        raise PhaseExit(code, error)


def new_context(
    env: Optional[Mapping[str, str]] = None,
    executor: Optional[Executor] = None,
    **overrides,
) -> Context:
    """
    Build a Context, reading the ambient environment if no snapshot is given

    Args:
        env: environment snapshot; defaults to a copy of ``os.environ``
        executor: process launcher; defaults to the mock table named by the
            settings, or real subprocesses
        overrides: PhaseSettings fields (application_root, layers_dir, ...)

    Returns:
        Context
    """
    snapshot = dict(os.environ if env is None else env)
    settings = PhaseSettings.from_env(snapshot, **overrides)
    if executor is None:
        if settings.exec_mocks is not None:
            executor = MockExecutor(load_mock_table(settings.exec_mocks))
            logger.debug(f"Using exec mocks from {settings.exec_mocks}")
        else:
            executor = SubprocessExecutor()
    return Context(settings=settings, env=snapshot, executor=executor)
