"""
Buildpack Engine - Main entry point

This module provides ``python -m bpengine`` by delegating to cli.py.
"""

from .cli import cli

if __name__ == "__main__":
    cli()
