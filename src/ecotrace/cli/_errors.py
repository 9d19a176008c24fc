"""CLI error handling and the service runner shared by every command."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import typer

from ecotrace.config import EcotraceConfig
from ecotrace.service import EcotraceService

T = TypeVar("T")

# Set by the app callback from --config
_config_path: Path | None = None


def set_config_path(path: Path | None) -> None:
    global _config_path
    _config_path = path


def load_config() -> EcotraceConfig:
    try:
        return EcotraceConfig.load(_config_path)
    except ValueError as exc:
        handle_error(f"invalid configuration: {exc}")


def run_with_service(fn: Callable[[EcotraceService], Awaitable[T]]) -> T:
    """Build a service from the effective config, run ``fn`` inside it, close it."""
    config = load_config()

    async def _run() -> T:
        async with EcotraceService.from_config(config) as service:
            return await fn(service)

    return asyncio.run(_run())


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def handle_error(msg: str) -> NoReturn:
    """Print an error message and exit."""
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(1)
