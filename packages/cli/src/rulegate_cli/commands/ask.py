"""ask command — question answering over the indexed rules."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markdown import Markdown

console = Console()


@click.command("ask")
@click.argument("question")
@click.pass_context
def ask_cmd(ctx, question: str):
    """Ask a question about the team's coding rules."""
    from rulegate_core.assistant import RuleAssistant
    from rulegate_core.config import ReviewSettings
    from rulegate_core.errors import ConfigurationError, RetrievalError
    from rulegate_core.providers import get_chat_provider, get_embedder
    from rulegate_core.retrieval import RuleRetriever
    from rulegate_core.vectorstore.chroma import ChromaVectorIndex

    config = ctx.obj["config"]
    settings = ReviewSettings.from_config(config)
    try:
        embedder = get_embedder(config, settings.request_timeout)
        chat = get_chat_provider(config, settings.request_timeout)
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e

    retriever = RuleRetriever(embedder, ChromaVectorIndex(path=config["vector_store_path"]), settings)
    try:
        answer = RuleAssistant(retriever, chat, settings).answer(question)
    except RetrievalError as e:
        raise click.ClickException(str(e)) from e

    console.print(Markdown(answer.text))
    if answer.sources:
        console.print("\n[bold]Sources[/bold]")
        for title in answer.sources:
            console.print(f"  • {title}")
