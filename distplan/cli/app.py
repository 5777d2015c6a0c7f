from __future__ import annotations

import typer

from distplan import __version__
from distplan.cli.commands.plan_cmd import manifest_cmd, plan_cmd, tag_cmd

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command("plan")(plan_cmd)
app.command("manifest")(manifest_cmd)
app.command("tag")(tag_cmd)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_print_version,
        is_eager=True,
    ),
) -> None:
    """Plan release artifacts for a workspace of packages."""
    del version


def main() -> None:
    app()
