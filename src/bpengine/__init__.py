"""
bpengine (Buildpack Engine)

A language-agnostic buildpack lifecycle engine: language plugins supply a
detect function and a build function, the engine drives them through the
lifecycle's exit-code contract and persists the layers they produce.

Main modules:
- phase: Phase driver (run_detect, run_build) and exit-code mapping
- context: Per-phase handle passed to plugin functions
- layers: Layer directories and their TOML metadata
- cache: Content-addressable cache signatures and layer cache checks
- environment: Build/launch environment operations and their composition
- execution: Command execution, attribution logging and exec mocking
- version: Runtime version resolution policy shared by language plugins
- config: Phase settings read from the environment snapshot
- testing: Out-of-process phase runner for plugin tests
- utils: Logging setup and plugin loading

Quick start example:
```python
from bpengine import Context, LayerFlag, main, opt_in_file_found, opt_out_file_not_found

def detect(ctx: Context):
    if ctx.file_exists("package.json"):
        return opt_in_file_found("package.json")
    return opt_out_file_not_found("package.json")

def build(ctx: Context):
    deps = ctx.layer("deps", LayerFlag.BUILD, LayerFlag.CACHE, LayerFlag.LAUNCH)
    if not ctx.check_cache(deps, files=["package.json"]):
        ctx.clear_layer(deps)
        ctx.exec(["npm", "install", "--prefix", str(deps.path)], attribution="user")
    deps.launch_env.prepend("NODE_PATH", ":", deps.path / "node_modules")

if __name__ == "__main__":
    main(detect, build)
```
"""

__version__ = "0.3.0"

from .constants import Attribution, EnvKind, EnvScope, LayerFlag, Phase
from .config import PhaseSettings
from .context import Context, new_context
from .datacls import (
    DetectResult,
    ExecResult,
    Process,
    MockProcess,
    opt_in,
    opt_out,
    opt_in_always,
    opt_in_env_set,
    opt_out_env_not_set,
    opt_in_file_found,
    opt_out_file_not_found,
)
from .environment import EnvOperation, Environment, compose
from .layers import Layer
from .cache import CacheSignature, compute_signature, check_cache
from .execution import Executor, SubprocessExecutor, MockExecutor
from .phase import run_detect, run_build, run_phase
from .version import RuntimeVersionPolicy, resolve_runtime_version
from .exceptions import (
    BuildpackError,
    UserError,
    InternalError,
    CacheError,
    ExecError,
    LayerError,
    ConfigurationError,
    ConfigValidationError,
    ExecMockError,
    PhaseExit,
)
from .cli import main

__all__ = [
    # Version
    '__version__',
    # Enums
    'Attribution',
    'EnvKind',
    'EnvScope',
    'LayerFlag',
    'Phase',
    # Context and driver
    'PhaseSettings',
    'Context',
    'new_context',
    'run_detect',
    'run_build',
    'run_phase',
    'main',
    # Results
    'DetectResult',
    'ExecResult',
    'Process',
    'MockProcess',
    'opt_in',
    'opt_out',
    'opt_in_always',
    'opt_in_env_set',
    'opt_out_env_not_set',
    'opt_in_file_found',
    'opt_out_file_not_found',
    # Layers, cache, environment
    'Layer',
    'CacheSignature',
    'compute_signature',
    'check_cache',
    'EnvOperation',
    'Environment',
    'compose',
    # Exec
    'Executor',
    'SubprocessExecutor',
    'MockExecutor',
    # Version policy
    'RuntimeVersionPolicy',
    'resolve_runtime_version',
    # Exceptions
    'BuildpackError',
    'UserError',
    'InternalError',
    'CacheError',
    'ExecError',
    'LayerError',
    'ConfigurationError',
    'ConfigValidationError',
    'ExecMockError',
    'PhaseExit',
]
