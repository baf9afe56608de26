"""
layover fetch - Send one request through a transport chain.

The chain comes from a config file when --config is given, otherwise from
the command line options.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from layover.client import Client
from layover.config import build_transport, load_config
from layover.core.types import Transport
from layover.exceptions import LayoverError
from layover.utils.logging import setup_logging

console = Console()


def _parse_headers(values: list[str]) -> list[tuple[str, str]]:
    headers = []
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"expected 'Name: value', got {value!r}", param_hint="--header")
        headers.append((name.strip(), content.strip()))
    return headers


def _settings(qps: float, retries: int, compress: str | None, verbose: bool) -> dict[str, Any]:
    transport: dict[str, Any] = {
        "retry": {"max_attempts": retries} if retries > 0 else False,
        "throttle": {"qps": qps},
        "accept_compressed": True,
    }
    if compress:
        transport["post_compressed"] = {"encoding": compress}
    if verbose:
        transport["log"] = {"level": "INFO"}
    return {"transport": transport}


async def _fetch(transport: Transport, method: str, url: str, headers: list[tuple[str, str]], data: str | None):
    async with Client(transport) as client:
        response = await client.request(method, url, headers=headers, data=data)
        body = await response.read()
    return response, body


def fetch(
    url: str = typer.Argument(..., help="URL to request"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    data: str | None = typer.Option(None, "--data", "-d", help="Request body"),
    header: list[str] = typer.Option([], "--header", "-H", help="Extra header, 'Name: value' (repeatable)"),
    qps: float = typer.Option(0.0, "--qps", help="Throttle to this many requests per second (0 disables)"),
    retries: int = typer.Option(3, "--retries", help="Maximum retries on 429/502/503/504/529 (0 disables)"),
    compress: str | None = typer.Option(None, "--compress", help="Compress the request body: gzip, br or zstd"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="YAML config with a transport section"),
    env: str | None = typer.Option(None, help="Environment override file to merge"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and responses"),
) -> None:
    """
    Send one request and print the status, headers and body.
    """
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING)
    try:
        if config_file is not None:
            config = load_config(config_file, env=env)
            if config.logging:
                setup_logging(
                    level=logging.DEBUG if verbose else config.logging.get("level", "WARNING"),
                    log_file=config.logging.get("file"),
                )
        else:
            config = _settings(qps, retries, compress, verbose)
        transport = build_transport(config)
        response, body = asyncio.run(_fetch(transport, method, url, _parse_headers(header), data))
    except (LayoverError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e

    style = "green" if response.ok else "red"
    console.print(f"[bold {style}]{response.status}[/bold {style}] {response.reason}")

    table = Table(show_header=True)
    table.add_column("Header", style="cyan")
    table.add_column("Value", style="dim")
    for name, value in response.headers.items():
        table.add_row(name, value)
    console.print(table)

    console.print(body.decode("utf-8", errors="replace"), markup=False, highlight=False)
