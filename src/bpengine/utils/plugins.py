import importlib
import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import Callable, Optional, Tuple

from ..exceptions import PluginLoadError

logger = logging.getLogger(__name__)


def load_module(spec: str) -> ModuleType:
    """
    Import a plugin module from a dotted name or a ``.py`` file path

    Args:
        spec: module name (e.g. 'mypacks.nodejs') or path (e.g. 'bp/main.py')

    Returns:
        the imported module
    """
    if spec.endswith(".py"):
        path = Path(spec).resolve()
        if not path.is_file():
            raise PluginLoadError(f"Plugin file not found: {path}")
        module_spec = importlib.util.spec_from_file_location(f"bpengine_plugin_{path.stem}", path)
        if module_spec is None or module_spec.loader is None:
            raise PluginLoadError(f"Cannot load plugin file: {path}")
        module = importlib.util.module_from_spec(module_spec)
        try:
            module_spec.loader.exec_module(module)
        except Exception as e:
            raise PluginLoadError(f"Error in plugin file {path}: {type(e).__name__}: {e}") from e
        logger.debug(f"Loaded plugin from file '{path}'")
        return module

    try:
        module = importlib.import_module(spec)
    except ImportError as e:
        raise PluginLoadError(f"Could not import plugin '{spec}': {e}") from e
    except Exception as e:
        raise PluginLoadError(f"Error in plugin '{spec}': {type(e).__name__}: {e}") from e
    logger.debug(f"Loaded plugin module '{spec}'")
    return module


def load_plugin(spec: str) -> Tuple[Optional[Callable], Optional[Callable]]:
    """
    Load the ``detect`` and ``build`` functions of a plugin

    A plugin is any module exposing one or both of these callables. Missing
    ones are returned as None; the caller decides which phase needs which.
    """
    module = load_module(spec)
    found = {}
    for name in ("detect", "build"):
        fn = getattr(module, name, None)
        if fn is not None and not callable(fn):
            raise PluginLoadError(f"Plugin '{spec}' attribute '{name}' is not callable")
        found[name] = fn
    if found["detect"] is None and found["build"] is None:
        raise PluginLoadError(f"Plugin '{spec}' defines neither 'detect' nor 'build'")
    return found["detect"], found["build"]
