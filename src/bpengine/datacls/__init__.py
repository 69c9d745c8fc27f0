"""
Buildpack Engine Data Classes

Type-safe models shared across the engine:
- DetectResult, ExecResult, Process: phase and command outcomes
- MockProcess: scripted command outcome used by the exec mocking hook
"""

from .results import (
    DetectResult,
    ExecResult,
    Process,
    opt_in,
    opt_out,
    opt_in_always,
    opt_in_env_set,
    opt_out_env_not_set,
    opt_in_file_found,
    opt_out_file_not_found,
)
from .mocks import MockProcess

__all__ = [
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
]
