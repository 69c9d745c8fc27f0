import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import click

from . import __version__, constants
from .constants import Phase
from .phase import BuildFn, DetectFn, run_phase
from .utils import configure_logging, load_plugin
from .exceptions import BuildpackError

logger = logging.getLogger(__name__)


def phase_options(func):
    """Options shared by the detect and build commands"""
    options = [
        click.option('-p', '--plugin', required=True,
                     help='Plugin module name or .py file exposing detect/build functions.'),
        click.option('--app-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
                     help='Application root. Defaults to the current directory.'),
        click.option('--buildpack-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
                     help=f'Buildpack root. Defaults to ${constants.ENV_BUILDPACK_DIR}.'),
        click.option('--layers-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
                     help=f'Layers root. Defaults to ${constants.ENV_LAYERS_DIR}.'),
        click.option('--debug', is_flag=True, default=False,
                     help=f'Enable debug logging (same as {constants.ENV_DEBUG}=true).'),
        click.option('--log-levels', default=None,
                     help='Per-module log levels, e.g. "cache=DEBUG,exec=INFO".'),
        click.option('--log-file', default=None, help='Also write logs to this file.'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run(phase: Phase, plugin: str, app_dir, buildpack_dir, layers_dir, debug, log_levels, log_file):
    env = dict(os.environ)
    debug = configure_logging(env, debug, log_levels, log_file)
    try:
        detect_fn, build_fn = load_plugin(plugin)
    except BuildpackError as e:
        logger.error(f"Failure: [internal] (ID: {e.error_id}) {e}")
        sys.exit(constants.EXIT_ERROR)
    code = run_phase(
        phase, detect_fn, build_fn,
        env=env,
        application_root=app_dir,
        buildpack_root=buildpack_dir,
        layers_dir=layers_dir,
        debug=True if debug else None,
    )
    sys.exit(code)


@click.group()
@click.version_option(__version__, prog_name="bpengine")
def cli():
    """bpengine - run buildpack detect/build functions under the lifecycle exit-code contract."""
    pass


@cli.command()
@phase_options
def detect(plugin, app_dir, buildpack_dir, layers_dir, debug, log_levels, log_file):
    """Run a plugin's detect function. Exits 0 (pass), 100 (opt-out) or 1 (error)."""
    _run(Phase.DETECT, plugin, app_dir, buildpack_dir, layers_dir, debug, log_levels, log_file)


@cli.command()
@phase_options
def build(plugin, app_dir, buildpack_dir, layers_dir, debug, log_levels, log_file):
    """Run a plugin's build function and persist its layers. Exits 0 or 1."""
    _run(Phase.BUILD, plugin, app_dir, buildpack_dir, layers_dir, debug, log_levels, log_file)


def main(detect_fn: Optional[DetectFn] = None, build_fn: Optional[BuildFn] = None, argv: Optional[List[str]] = None):
    """
    Entry point for a buildpack executable

    The phase is taken from the executable name (``bin/detect``,
    ``bin/build``) or, failing that, from the first argument. Remaining
    arguments follow the lifecycle convention:

        detect <platform> <plan>
        build <layers> <platform> <plan>
    """
    argv = list(sys.argv if argv is None else argv)
    executable = Path(argv[0]) if argv else Path("")
    args = argv[1:]
    phases = {p.value: p for p in Phase}

    if executable.name in phases:
        phase = phases[executable.name]
        default_buildpack_root = executable.resolve().parent.parent
    elif args and args[0] in phases:
        phase = phases[args.pop(0)]
        default_buildpack_root = None
    else:
        sys.stderr.write(f"usage: {executable.name} detect|build [args...]\n")
        sys.exit(constants.EXIT_ERROR)

    env = dict(os.environ)
    configure_logging(env)

    layers_dir = None
    platform_dir = None
    if phase == Phase.BUILD:
        layers_dir = args[0] if len(args) > 0 else None
        platform_dir = args[1] if len(args) > 1 else None
    else:
        platform_dir = args[0] if len(args) > 0 else None

    code = run_phase(
        phase, detect_fn, build_fn,
        env=env,
        buildpack_root=env.get(constants.ENV_BUILDPACK_DIR) or default_buildpack_root,
        layers_dir=layers_dir,
        platform_dir=platform_dir,
    )
    sys.exit(code)
