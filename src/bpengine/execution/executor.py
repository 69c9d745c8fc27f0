import logging
import subprocess
import time
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from ..constants import Attribution, EXEC_RUNNING_PREFIX, EXEC_DONE_PREFIX
from ..datacls import ExecResult
from ..exceptions import ExecError

logger = logging.getLogger(__name__)


class Executor:
    """Launches a command and returns its result. Holds no per-call state."""

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ExecResult:
        raise NotImplementedError

    def exec(
        self,
        command: Union[str, Sequence[str]],
        attribution: Attribution = Attribution.INTERNAL,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ExecResult:
        """Run ``command`` with attribution logging; see :func:`execute`."""
        return execute(self, command, attribution, cwd=cwd, env=env)


class SubprocessExecutor(Executor):
    """Executor that spawns real processes via :mod:`subprocess`."""

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ExecResult:
        start = time.monotonic()
        try:
            process = subprocess.run(
                list(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise ExecError(f"starting {' '.join(command)}: {e}") from e
        return ExecResult(
            command=list(command),
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            combined=(process.stdout or "") + (process.stderr or ""),
            exit_code=process.returncode,
            duration=time.monotonic() - start,
        )


def execute(
    executor: Executor,
    command: Union[str, Sequence[str]],
    attribution: Attribution = Attribution.INTERNAL,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    output: Optional[List[str]] = None,
    record_debug: bool = False,
) -> ExecResult:
    """
    Run a command through ``executor`` and log it according to its attribution

    - USER: the command line, its combined output and the ``Done`` line are
      shown to the end user
    - USER_TIMING: only the ``Running``/``Done`` frame is shown, output is debug
    - INTERNAL: everything is logged at debug level

    A non-zero exit code is returned, not raised; the caller decides whether
    it is fatal. A command that cannot be started raises ExecError.

    Args:
        executor: process launcher (real or mocked)
        command: argv list, or a string which is split on whitespace
        attribution: who is responsible for the command's output
        cwd: working directory
        env: full environment for the child process
        output: if given, every line logged at info level is appended to it
        record_debug: also append lines logged at debug level

    Returns:
        ExecResult
    """
    argv: List[str] = command.split() if isinstance(command, str) else list(command)
    if not argv:
        raise ExecError("empty command")
    cmdline = " ".join(argv)
    attribution = Attribution(attribution)

    frame_level = logging.DEBUG if attribution == Attribution.INTERNAL else logging.INFO
    output_level = logging.INFO if attribution == Attribution.USER else logging.DEBUG

    def emit(level: int, message: str) -> None:
        logger.log(level, message)
        if output is not None and (level >= logging.INFO or record_debug):
            output.append(message)

    emit(frame_level, f'{EXEC_RUNNING_PREFIX} "{cmdline}"')
    result = executor.run(argv, cwd=cwd, env=env)
    combined = result.combined.rstrip()
    if combined:
        emit(output_level, combined)
    status = f"{result.duration:.3f}s" if result.ok else f"exit code {result.exit_code}, {result.duration:.3f}s"
    emit(frame_level, f'{EXEC_DONE_PREFIX} "{cmdline}" ({status})')
    return result
