"""CLI entry point for rulegate.

Commands:
  review  — review a pull request against the indexed rules
  index   — chunk, embed and index rule documents
  ask     — ask a question about the rules
  status  — show the stored decision and violations of a pull request
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from rulegate_cli.commands.ask import ask_cmd
from rulegate_cli.commands.index import index_cmd
from rulegate_cli.commands.review import review_cmd
from rulegate_cli.commands.status import status_cmd

console = Console()

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _build_store(config: dict):
    """Instantiate the configured store from .rulegate.yml settings.

      store: sqlite → SQLiteStore (store_path, default .rulegate.db)
      (default)     → NoOpStore  (nothing persisted)

    This factory lives in cli.py so neither rulegate_core nor rulegate_store
    know about the config file format.
    """
    from rulegate_store.noop import NoOpStore

    store_type = config.get("store", "noop")
    if store_type == "sqlite":
        from rulegate_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path") or ".rulegate.db")
    if store_type != "noop":
        console.print(f"[yellow]Unknown store {store_type!r}. Falling back to no store.[/yellow]")
    return NoOpStore()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("rulegate"),
    prog_name="rulegate",
)
@click.option(
    "--config",
    "config_path",
    default=".rulegate.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="RULEGATE_CONFIG",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="RULEGATE_LOG_LEVEL",
    help="Verbosity of the log output on stderr.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str):
    """Rule-grounded automated review for GitHub pull requests."""
    from rulegate_core.config import load_config
    from rulegate_core.errors import ConfigurationError
    from rulegate_cli.auth import resolve_github_token

    _configure_logging(log_level.upper())
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(review_cmd)
main.add_command(index_cmd)
main.add_command(ask_cmd)
main.add_command(status_cmd)
