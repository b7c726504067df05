"""review command — review a pull request against the indexed rules."""

from __future__ import annotations

import click
from rich.console import Console

from rulegate_core.errors import ConfigurationError, ExternalApiError, ReviewAborted
from rulegate_core.gh.pull_request import get_pull_requests, get_repo
from rulegate_core.reviewer import ReviewRun, run_review

console = Console()

_EVENT_STYLE = {
    "APPROVE": "green",
    "COMMENT": "yellow",
    "REQUEST_CHANGES": "red",
}


def _check_credentials(config: dict) -> None:
    if not config.get("github_token"):
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    # Rule embeddings always come from OpenAI, whichever chat model is used.
    if not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")
    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")


def _print_run(run: ReviewRun) -> None:
    decision = run.decision
    if decision is None:
        console.print(f"[yellow]{run.repo}#{run.pr_number} was not reviewed (draft pull request).[/yellow]")
        return
    style = _EVENT_STYLE.get(run.event, "white")
    console.print(
        f"[bold]{run.repo}#{run.pr_number}[/bold]: [{style}]{run.event}[/{style}]: "
        f"{decision.error_count} error(s), {decision.warning_count} warning(s), "
        f"{decision.files_analyzed}/{decision.total_files} file(s) analyzed"
    )
    console.print(f"  {len(run.comments)} inline comment(s), {len(run.unresolved)} without a diff position")
    for path, error in run.analysis.failed_files.items():
        console.print(f"  [red]✗[/red] {path}: {error}")


@click.command("review")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Omit to list open PRs interactively.",
)
@click.option(
    "--model",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="Chat model provider. Overrides config file.",
)
@click.option("--dry-run", "dry_run", is_flag=True, help="Print the review without posting it to GitHub.")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts.")
@click.pass_context
def review_cmd(ctx, repo: str, pr_number: int | None, model: str | None, dry_run: bool, yes: bool):
    """Review a pull request against the team's indexed coding rules.

    Analyses every changed file, posts inline comments on the exact diff
    lines and approves or requests changes.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      OPENAI_API_KEY       Embeddings, and chat with --model openai
      ANTHROPIC_API_KEY    Required when using --model anthropic
    """
    config = ctx.obj["config"]
    store = ctx.obj.get("store")
    if model:
        config["model"] = model
    _check_credentials(config)

    if pr_number is None:
        try:
            prs = list(get_pull_requests(get_repo(repo, token=config["github_token"])))
        except Exception as e:
            raise click.ClickException(f"Could not list pull requests of {repo}: {e}") from e
        if not prs:
            console.print("[yellow]No open pull requests found.[/yellow]")
            return
        console.print("\nOpen pull requests:")
        for pr in prs:
            console.print(f"  [bold]#{pr.number}[/bold]  {pr.title}")
        pr_number = click.prompt("\nEnter the pull request number", type=int)

    if not dry_run and not yes:
        click.confirm(f"Post a review to {repo}#{pr_number}?", default=True, abort=True)

    try:
        run = run_review(repo=repo, pr_number=pr_number, config=config, store=store, dry_run=dry_run)
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e
    except ExternalApiError as e:
        raise click.ClickException(str(e)) from e
    except ReviewAborted as e:
        if e.run.decision is not None:
            _print_run(e.run)
        raise click.ClickException(str(e)) from e

    _print_run(run)
