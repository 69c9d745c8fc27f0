"""
Buildpack Engine Cache Module

The cache system consists of two components:
- CacheSignature: deterministic digest over ordered tokens and file contents
- check_cache: compares a layer's previous signature with a fresh one
"""

from .signature import CacheSignature, compute_signature
from .manager import check_cache

__all__ = [
    'CacheSignature',
    'compute_signature',
    'check_cache',
]
