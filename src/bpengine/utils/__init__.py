"""
Buildpack Engine Utils Module

- logger: Logging setup and configuration
- plugins: Loading plugin modules that expose detect/build functions

Usage:
    from bpengine.utils import configure_logging, load_plugin
"""

from .logger import configure_logging, setup_logger, parse_module_levels
from .plugins import load_plugin, load_module

__all__ = [
    'configure_logging',
    'setup_logger',
    'parse_module_levels',
    'load_plugin',
    'load_module',
]
