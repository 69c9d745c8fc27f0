"""
Buildpack Engine Phase Driver

Runs one detect or build function and maps its outcome to the lifecycle's
exit-code contract:

- 0: detect passed / build succeeded
- 100: detect did not pass (opt-out, not an error)
- 1: any error; user and internal errors differ only in how they are reported
"""

import logging
from typing import Callable, Optional

from . import constants
from .context import Context, new_context
from .datacls import DetectResult
from .exceptions import BuildpackError, PhaseExit, UserError
from .layers import write_launch_metadata

logger = logging.getLogger(__name__)

DetectFn = Callable[[Context], DetectResult]
BuildFn = Callable[[Context], None]


def format_error(error: BaseException) -> str:
    """Render an error the way it is shown to the end user or operator."""
    if isinstance(error, UserError):
        return f"Failure: (ID: {error.error_id}) {error}"
    if isinstance(error, BuildpackError):
        return f"Failure: [internal] (ID: {error.error_id}) {error}"
    return f"Failure: [internal] unexpected {type(error).__name__}: {error}"


def _report(error: BaseException, debug: bool) -> None:
    logger.error(format_error(error), exc_info=debug and not isinstance(error, UserError))


def _handle_exit(signal: PhaseExit, debug: bool) -> int:
    if signal.error is not None:
        _report(signal.error, debug)
    logger.debug(f"Phase exited early with code {signal.code}")
    return signal.code


def run_detect(detect_fn: DetectFn, ctx: Optional[Context] = None, **context_options) -> int:
    """
    Run a detect function

    Args:
        detect_fn: plugin function returning a DetectResult
        ctx: prepared Context, or None to build one from ``context_options``

    Returns:
        int: exit code
    """
    try:
        if ctx is None:
            ctx = new_context(**context_options)
        result = detect_fn(ctx)
    except PhaseExit as signal:
        return _handle_exit(signal, ctx is not None and ctx.debug)
    except Exception as e:
        _report(e, ctx is not None and ctx.debug)
        return constants.EXIT_ERROR

    if not isinstance(result, DetectResult):
        logger.error(format_error(TypeError(f"detect returned {type(result).__name__}, want DetectResult")))
        return constants.EXIT_ERROR
    if not result.passed:
        ctx.logf(result.reason)
        return constants.EXIT_DETECT_FAIL
    if result.reason:
        ctx.logf(result.reason)
    return constants.EXIT_SUCCESS


def persist(ctx: Context) -> None:
    """Write metadata and env files of every acquired layer, then launch.toml."""
    for layer in ctx.layers.values():
        layer.persist()
    if ctx.processes and ctx.layers_dir is not None:
        write_launch_metadata(ctx.layers_dir, ctx.processes)


def run_build(build_fn: BuildFn, ctx: Optional[Context] = None, **context_options) -> int:
    """
    Run a build function and persist what it produced

    Nothing is persisted when the function raises or exits early.

    Args:
        build_fn: plugin function populating layers through the Context
        ctx: prepared Context, or None to build one from ``context_options``

    Returns:
        int: exit code
    """
    try:
        if ctx is None:
            ctx = new_context(**context_options)
        build_fn(ctx)
        persist(ctx)
    except PhaseExit as signal:
        return _handle_exit(signal, ctx is not None and ctx.debug)
    except Exception as e:
        _report(e, ctx is not None and ctx.debug)
        return constants.EXIT_ERROR
    logger.debug(f"Build finished with {len(ctx.layers)} layer(s)")
    return constants.EXIT_SUCCESS


def run_phase(phase: constants.Phase, detect_fn: Optional[DetectFn], build_fn: Optional[BuildFn], **context_options) -> int:
    """Dispatch to run_detect or run_build; a missing function is an internal error."""
    phase = constants.Phase(phase)
    fn = detect_fn if phase == constants.Phase.DETECT else build_fn
    if fn is None:
        logger.error(f"Failure: [internal] no {phase.value} function provided")
        return constants.EXIT_ERROR
    if phase == constants.Phase.DETECT:
        return run_detect(fn, **context_options)
    return run_build(fn, **context_options)
