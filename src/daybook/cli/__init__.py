"""Command line interface for daybook."""

from .main import cli, main
from .cli_common import CLIContext, ExitCode, exit_code_for

__all__ = [
    "CLIContext",
    "ExitCode",
    "cli",
    "exit_code_for",
    "main",
]
