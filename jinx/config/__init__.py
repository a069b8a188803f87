"""
Configuration loading for jinx environments.
"""

from __future__ import annotations

from .load import load_config
from .model import UNDEFINED_POLICIES, EnvironmentConfig, SandboxConfig, SyntaxConfig
from .typed import ConfigLoadError, load_typed

__all__ = [
    "EnvironmentConfig",
    "SyntaxConfig",
    "SandboxConfig",
    "UNDEFINED_POLICIES",
    "ConfigLoadError",
    "load_config",
    "load_typed",
]
