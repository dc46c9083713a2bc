"""
Root Typer application for the payspine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="payspine",
    help="payspine — deadline-aware payment submission to a single provider.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from payspine import __version__

        typer.echo(f"payspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """payspine CLI — inspect settings and submit payments."""


from payspine.cli.config import app as config_app  # noqa: E402
from payspine.cli.payments import app as payments_app  # noqa: E402

app.add_typer(config_app, name="config", help="Configuration inspection.")
app.add_typer(payments_app, name="payments", help="Payment submission.")


if __name__ == "__main__":
    app()
