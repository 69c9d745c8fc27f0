"""
Buildpack Engine Exec Wrapper

- Executor / SubprocessExecutor: process launchers
- MockExecutor: table-driven launcher for tests, never spawns processes
- execute: runs a command through a launcher with attribution-aware logging
"""

from .executor import Executor, SubprocessExecutor, execute
from .mock import MockExecutor, load_mock_table, dump_mock_table

__all__ = [
    'Executor',
    'SubprocessExecutor',
    'MockExecutor',
    'execute',
    'load_mock_table',
    'dump_mock_table',
]
