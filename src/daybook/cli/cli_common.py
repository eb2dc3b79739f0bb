"""Common CLI utilities: JSON output, stable exit codes and error mapping."""

from __future__ import annotations

import json
import traceback
import uuid
from enum import IntEnum
from pathlib import Path
from typing import Any

import click

from ..core.config import ConfigError, Settings, load_settings
from ..core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from ..observability.loguru_config import configure_loguru
from ..service import DaybookService, create_service


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0  # Successful execution
    VALIDATION_ERROR = 2  # Invalid payload or date
    CONFLICT = 3  # Concurrent change or archive already present
    NOT_FOUND = 4  # Missing entry or archive
    STORAGE_ERROR = 5  # I/O or lock error
    CONFIG_ERROR = 6  # Configuration error
    UNKNOWN_ERROR = 7  # Unknown/unexpected error


def exit_code_for(exc: BaseException) -> ExitCode:
    """Map an exception to its stable exit code."""
    if isinstance(exc, ValidationError):
        return ExitCode.VALIDATION_ERROR
    if isinstance(exc, ConflictError):
        return ExitCode.CONFLICT
    if isinstance(exc, NotFoundError):
        return ExitCode.NOT_FOUND
    if isinstance(exc, StorageError | OSError):
        return ExitCode.STORAGE_ERROR
    if isinstance(exc, ConfigError):
        return ExitCode.CONFIG_ERROR
    return ExitCode.UNKNOWN_ERROR


class CLIContext:
    """Context for CLI execution with JSON output and lazy service construction."""

    def __init__(
        self,
        config_path: Path | None = None,
        json_output: bool = False,
        verbose: bool = False,
        trace_id: str | None = None,
    ):
        """Initialize CLI context.

        Args:
            config_path: Explicit config file (default: daybook.yaml / $DAYBOOK_CONFIG)
            json_output: Enable JSON output mode
            verbose: Verbose output (DEBUG logs, tracebacks on error)
            trace_id: Trace ID for correlation
        """
        self.config_path = config_path
        self.json_output = json_output
        self.verbose = verbose
        self.trace_id = trace_id or f"trace-{uuid.uuid4().hex[:12]}"
        self._settings: Settings | None = None
        self._service: DaybookService | None = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings(self.config_path)
        return self._settings

    @property
    def service(self) -> DaybookService:
        """Build the service once per invocation, configuring logging first."""
        if self._service is None:
            settings = self.settings
            configure_loguru(
                log_dir=settings.log_dir,
                level="DEBUG" if self.verbose else settings.log_level,
                # JSON mode: stdout carries only JSON, keep logs off the console
                enable_console=not self.json_output,
            )
            self._service = create_service(settings)
        return self._service

    def output(
        self, data: Any, status: str = "success", error: str | None = None, meta: dict[str, Any] | None = None
    ) -> None:
        """Output result in appropriate format.

        Args:
            data: Result data
            status: Status ("success" or "error")
            error: Error message if status is error
            meta: Additional metadata
        """
        if self.json_output:
            result: dict[str, Any] = {"status": status, "trace_id": self.trace_id}

            if error:
                result["error"] = error
            else:
                result["data"] = data

            if meta:
                result["meta"] = meta

            click.echo(json.dumps(result, ensure_ascii=False, indent=2))
        elif status == "error":
            click.echo(f"Error: {error}", err=True)
        elif isinstance(data, dict):
            for key, value in data.items():
                click.echo(f"{key}: {value}")
        elif isinstance(data, list):
            for item in data:
                click.echo(f"  - {item}")
        else:
            click.echo(data)


def handle_cli_error(ctx: CLIContext, exc: Exception) -> int:
    """Report an error and return the matching exit code.

    Args:
        ctx: CLI context
        exc: Exception to handle

    Returns:
        Appropriate exit code
    """
    exit_code = exit_code_for(exc)
    meta: dict[str, Any] = {"exit_code": int(exit_code), "error_type": type(exc).__name__}

    if isinstance(exc, ValidationError) and exc.errors:
        meta["errors"] = list(exc.errors)

    ctx.output(None, status="error", error=str(exc), meta=meta)

    if ctx.verbose and not ctx.json_output:
        click.echo("\nTraceback:", err=True)
        click.echo(traceback.format_exc(), err=True)

    return int(exit_code)


def run_command(ctx: CLIContext, action: Any, render: Any = None) -> None:
    """Run a command body, print its result and exit with a stable code.

    Args:
        ctx: CLI context
        action: Zero-argument callable producing the command result
        render: Optional callable turning the result into output data
    """
    try:
        result = action()
    except Exception as exc:
        code = handle_cli_error(ctx, exc)
    else:
        ctx.output(render(result) if render else result)
        code = int(ExitCode.SUCCESS)

    click.get_current_context().exit(code)


def parse_pairs(pairs: tuple[str, ...], *, numeric: bool) -> dict[str, Any]:
    """Parse repeated ``key=value`` options.

    Raises:
        click.BadParameter: If a pair is malformed or a numeric value is not a number
    """
    parsed: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}")

        if numeric:
            try:
                parsed[key] = float(raw) if any(c in raw for c in ".eE") else int(raw)
            except ValueError as exc:
                raise click.BadParameter(f"{key} must be a number, got {raw!r}") from exc
        else:
            parsed[key] = raw
    return parsed
