"""
Unified test infrastructure for jinx.

Modules:
- file_utils: Utilities for creating template files and directories
- rendering_utils: Environments and rendering shortcuts
- cli_utils: Running the command line interface
"""

from .file_utils import write, write_text_file, write_templates
from .rendering_utils import make_env, render, render_named
from .cli_utils import run_cli, run_main

__all__ = [
    # File utilities
    "write", "write_text_file", "write_templates",

    # Rendering utilities
    "make_env", "render", "render_named",

    # CLI utilities
    "run_cli", "run_main",
]
