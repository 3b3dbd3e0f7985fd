"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from pathlib import Path
from typing import Annotated

import typer

from provctl import __version__
from provctl.cli.commands import apply, facts, history, init, plan
from provctl.utils.formatting import configure_logging

# Create main Typer app
app = typer.Typer(
    name="provctl",
    help="Declarative, idempotent host provisioning.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"provctl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="Configuration file. Defaults to ~/.config/provctl/config.toml.",
        ),
    ] = None,
) -> None:
    """provctl - Declarative, idempotent host provisioning.

    Describe the packages, files, commands and services a host needs in
    a manifest, then converge the host to it as often as you like.
    """
    configure_logging(verbose=verbose, quiet=quiet)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config


# Register commands
app.command("plan")(plan.plan_command)
app.command("apply")(apply.apply_command)
app.command("facts")(facts.facts_command)
app.command("init")(init.init_command)
app.command("history")(history.history_command)


if __name__ == "__main__":
    app()
