"""
Logging for a phase process

Everything a phase prints goes through the root logger to stderr, which the
lifecycle captures along with the exit code. Verbosity is driven by the same
environment snapshot the phase reads:

- GOOGLE_DEBUG=true (or --debug) lowers the root level to DEBUG, which also
  reveals internal exec frames
- BPENGINE_LOG_LEVELS="cache=DEBUG,exec=WARNING" tunes single modules,
  with the short aliases of ``constants.LOG_ALIAS_MAP``
"""

import logging
import sys
from typing import Dict, Mapping, Optional

import colorlog

from .. import constants
from ..config import is_truthy

_CONSOLE_FORMAT = '[%(levelname).4s] %(name)s: %(message)s'
_COLOR_FORMAT = '%(log_color)s[%(levelname).4s]%(reset)s %(cyan)s%(name)s%(reset)s: %(message)s'
_FILE_FORMAT = '%(asctime)s [%(levelname).4s] %(name)s: %(message)s'
_LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def configure_logging(
    env: Mapping[str, str],
    debug: bool = False,
    log_levels: Optional[str] = None,
    log_file: Optional[str] = None,
) -> bool:
    """
    Configure logging for one phase from its environment snapshot

    Args:
        env: environment snapshot of the phase
        debug: force debug output regardless of GOOGLE_DEBUG
        log_levels: per-module levels; BPENGINE_LOG_LEVELS when None
        log_file: also write everything to this file

    Returns:
        bool: whether debug output is on
    """
    debug = debug or is_truthy(env.get(constants.ENV_DEBUG))
    if log_levels is None:
        log_levels = env.get(constants.ENV_LOG_LEVELS)
    setup_logger(
        debug=debug,
        module_levels=parse_module_levels(log_levels),
        log_file=log_file,
        use_colors=sys.stderr.isatty() and not env.get("NO_COLOR"),
    )
    return debug


def setup_logger(
    debug: bool = False,
    module_levels: Optional[Mapping[str, str]] = None,
    log_file: Optional[str] = None,
    use_colors: bool = False,
) -> None:
    """Set the root level and install the stderr (and file) handlers once per process."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    # handlers survive repeated calls; only levels are re-applied
    if not root.handlers:
        root.addHandler(_console_handler(use_colors))
        if log_file:
            handler = _file_handler(log_file)
            if handler is not None:
                root.addHandler(handler)

    _apply_module_levels(module_levels or {})


def _console_handler(use_colors: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if use_colors:
        handler.setFormatter(colorlog.ColoredFormatter(_COLOR_FORMAT, log_colors=_LOG_COLORS, reset=True))
    else:
        handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: str) -> Optional[logging.Handler]:
    try:
        handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    except OSError as e:
        logging.error(f"Failed to create log file handler for '{log_file}': {e}")
        return None
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def parse_module_levels(spec: Optional[str]) -> Dict[str, str]:
    """Parse ``"ctx=DEBUG,exec=INFO"`` into a name -> level mapping."""
    module_levels = {}
    for pair in (spec or "").split(','):
        name, sep, lvl = pair.strip().partition('=')
        if sep and name.strip():
            module_levels[name.strip()] = lvl.strip().upper()
    return module_levels


def _apply_module_levels(module_levels: Mapping[str, str]) -> None:
    for name, lvl_str in module_levels.items():
        lvl = logging.getLevelName(lvl_str.upper())
        if not isinstance(lvl, int):
            logging.warning(f"Ignoring unknown log level '{lvl_str}' for '{name}'")
            continue
        logging.getLogger(_normalize_module_name(name)).setLevel(lvl)


def _normalize_module_name(name: str) -> str:
    """Expand an alias, strip a trailing ``.*`` and prefix known bpengine modules."""
    if name in constants.LOG_ALIAS_MAP:
        return constants.LOG_ALIAS_MAP[name]
    name = name.removesuffix('.*')
    first = name.split('.', 1)[0]
    if first in constants.KNOWN_TOP_MODULES:
        return f'bpengine.{name}'
    return name
