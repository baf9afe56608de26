"""
Entry point of the ``layover`` command.
"""

import typer

from layover import __version__
from layover.cli import fetch

app = typer.Typer(
    name="layover",
    help="Send HTTP requests through a chain of layover transports.",
    add_completion=False,
)

app.command(name="fetch")(fetch.fetch)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"layover version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Print the layover version and exit.",
    ),
) -> None:
    """
    Layover: retries, pacing, request IDs, logging and compression for HTTP requests.

    Run 'layover fetch --help' for the request options.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
