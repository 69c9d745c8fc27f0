"""
Out-of-process phase runner for plugin tests

A phase may end the process (``Context.exit`` inside a plugin executable, or
a crash), so plugin tests run it in a child ``python -m bpengine`` process:

    result = run_build("my_plugin.py", files={"index.js": ""},
                       mocks={"npm install": mock(stdout="added 1 package")})
    assert result.exit_code == 0
    assert result.command_executed("npm install")

Debug mode is always on in the child, so every executed command is framed
with ``Running ... Done`` in the combined output.
"""

import logging
import os
import re
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from pydantic import BaseModel

from . import constants
from .constants import Phase
from .datacls import MockProcess
from .execution import dump_mock_table

logger = logging.getLogger(__name__)

Envs = Union[Mapping[str, str], Iterable[str], None]


class PhaseResult(BaseModel):
    """
        Class describes a phase ran as a child process.
    """
    output: str
    exit_code: int
    app_dir: Path
    layers_dir: Path

    def command_executed(self, command: str) -> bool:
        """Whether ``command`` (a regex) was run through the Exec Wrapper."""
        pattern = rf"(?s){constants.EXEC_RUNNING_PREFIX}.*{command}.*{constants.EXEC_DONE_PREFIX}"
        return re.search(pattern, self.output) is not None


def mock(stdout: str = "", stderr: str = "", exit_code: int = 0) -> MockProcess:
    return MockProcess(stdout=stdout, stderr=stderr, exit_code=exit_code)


def _env_pairs(envs: Envs) -> Dict[str, str]:
    if envs is None:
        return {}
    if isinstance(envs, Mapping):
        return {str(k): str(v) for k, v in envs.items()}
    pairs = {}
    for item in envs:
        name, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Environment entries must look like NAME=value, got {item!r}")
        pairs[name] = value
    return pairs


def _package_parent() -> str:
    return str(Path(__file__).resolve().parent.parent)


def run_phase_for_test(
    phase: Phase,
    plugin: Union[str, Path],
    files: Optional[Mapping[str, str]] = None,
    envs: Envs = None,
    app: Optional[Union[str, Path]] = None,
    buildpack: Optional[Union[str, Path]] = None,
    mocks: Optional[Mapping[str, Union[MockProcess, Mapping]]] = None,
    workdir: Optional[Union[str, Path]] = None,
    layers_dir: Optional[Union[str, Path]] = None,
) -> PhaseResult:
    """
    Run one phase of ``plugin`` in a child process

    Args:
        phase: detect or build
        plugin: plugin module name or .py file
        files: relative path -> content, written into the application root
        envs: variables for the child, as a mapping or NAME=value strings
        app: fixture directory copied into the application root first
        buildpack: fixture directory copied into the buildpack root
        mocks: exec mock table (pattern -> MockProcess); no real command runs
        workdir: scratch directory; a new temporary one by default
        layers_dir: layers root, to inspect or reuse across builds

    Returns:
        PhaseResult
    """
    phase = Phase(phase)
    workdir = Path(workdir) if workdir else Path(tempfile.mkdtemp(prefix="bpengine-test-"))
    app_dir = workdir / "app"
    buildpack_dir = workdir / "buildpack"
    layers = Path(layers_dir) if layers_dir else workdir / "layers"
    for d in (app_dir, buildpack_dir, layers):
        d.mkdir(parents=True, exist_ok=True)

    if app is not None:
        shutil.copytree(app, app_dir, dirs_exist_ok=True)
    if buildpack is not None:
        shutil.copytree(buildpack, buildpack_dir, dirs_exist_ok=True)
    for rel, content in (files or {}).items():
        target = app_dir / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    env = dict(os.environ)
    env[constants.ENV_DEBUG] = "true"
    env["NO_COLOR"] = "1"
    env["PYTHONPATH"] = os.pathsep.join(p for p in (_package_parent(), env.get("PYTHONPATH")) if p)
    env.pop(constants.ENV_EXEC_MOCKS, None)
    if mocks:
        env[constants.ENV_EXEC_MOCKS] = str(dump_mock_table(mocks, workdir / "exec-mocks.yaml"))
    env.update(_env_pairs(envs))

    plugin = str(Path(plugin).resolve()) if str(plugin).endswith(".py") else str(plugin)
    cmd = [
        sys.executable, "-m", "bpengine", phase.value,
        "--plugin", plugin,
        "--app-dir", str(app_dir),
        "--buildpack-dir", str(buildpack_dir),
        "--layers-dir", str(layers),
    ]
    logger.debug(f"Running phase command: {' '.join(cmd)}")
    process = subprocess.run(
        cmd,
        cwd=str(app_dir),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
    )
    return PhaseResult(output=process.stdout or "", exit_code=process.returncode, app_dir=app_dir, layers_dir=layers)


def run_detect(plugin: Union[str, Path], **kwargs) -> PhaseResult:
    return run_phase_for_test(Phase.DETECT, plugin, **kwargs)


def run_build(plugin: Union[str, Path], **kwargs) -> PhaseResult:
    return run_phase_for_test(Phase.BUILD, plugin, **kwargs)
