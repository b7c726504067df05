"""index command — chunk, embed and index rule documents."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

console = Console()


@click.command("index")
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--remove", "remove_id", default=None, help="Remove the chunks of one document id instead.")
@click.pass_context
def index_cmd(ctx, paths: tuple[Path, ...], remove_id: str | None):
    """Index rule documents so reviews can retrieve them.

    PATHS are Markdown or text files, or directories scanned for them. With no
    PATHS, the `rules` entries of .rulegate.yml are indexed, or the built-in
    guidelines when none are configured. Re-indexing a file replaces its
    previous chunks.
    """
    from rulegate_core.config import ReviewSettings, load_rule_paths
    from rulegate_core.errors import ConfigurationError
    from rulegate_core.indexer import RuleIndexer
    from rulegate_core.providers import get_embedder
    from rulegate_core.vectorstore.chroma import ChromaVectorIndex

    config = ctx.obj["config"]
    settings = ReviewSettings.from_config(config)
    try:
        embedder = get_embedder(config, settings.request_timeout)
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e
    indexer = RuleIndexer(embedder, ChromaVectorIndex(path=config["vector_store_path"]), settings)

    if remove_id:
        removed = indexer.remove_document(remove_id)
        console.print(f"Removed {removed} chunk(s) of [bold]{remove_id}[/bold].")
        return

    try:
        files = load_rule_paths({**config, "rules": [str(p) for p in paths]} if paths else config)
    except FileNotFoundError as e:
        raise click.UsageError(str(e)) from e

    report = indexer.index_paths(files)
    console.print(
        f"[green]Indexed {report.documents_indexed} document(s)[/green] into "
        f"{report.chunks_created} chunk(s)."
    )
    for doc_id, error in report.failed.items():
        console.print(f"  [red]✗[/red] {doc_id}: {error}")
    if report.failed:
        ctx.exit(1)
