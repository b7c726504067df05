"""status command — show the stored review state of a pull request."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()

_DECISION_STYLE = {
    "approved": "green",
    "changes_requested": "red",
    "pending": "yellow",
}
_SEVERITY_STYLE = {"error": "red", "warning": "yellow", "info": "blue"}


@click.command("status")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request number. Omit to list every PR.")
@click.pass_context
def status_cmd(ctx, repo: str, pr_number: int | None):
    """Show the stored decision and violations of reviewed pull requests.

    Reads from the configured store. Add 'store: sqlite' to .rulegate.yml to
    keep review state between runs.
    """
    from rulegate_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError("No store configured. Add 'store: sqlite' to .rulegate.yml.")

    if pr_number is None:
        records = store.list_pull_requests(repo)
        if not records:
            console.print("[yellow]No pull requests recorded.[/yellow]")
            return
        table = Table(title=f"Reviewed pull requests — {repo}", show_header=True, header_style="bold cyan")
        table.add_column("PR", style="bold", width=6)
        table.add_column("Title", max_width=40)
        table.add_column("Author", width=16)
        table.add_column("Decision", width=18)
        table.add_column("Updated", width=20)
        for r in records:
            style = _DECISION_STYLE.get(r.review_decision, "white")
            table.add_row(
                f"#{r.pr_number}",
                r.title[:40],
                r.author,
                f"[{style}]{r.review_decision}[/{style}]",
                r.updated_at[:19].replace("T", " "),
            )
        console.print(table)
        return

    record = store.find_pr(repo, pr_number)
    if record is None:
        console.print(f"[yellow]No review recorded for {repo}#{pr_number}.[/yellow]")
        return

    style = _DECISION_STYLE.get(record.review_decision, "white")
    console.print(f"[bold]{repo}#{pr_number}[/bold] {record.title}")
    console.print(f"Decision: [{style}]{record.review_decision}[/{style}]")
    if record.github_review_id:
        console.print(f"GitHub review: {record.github_review_id}")

    violations = store.list_violations(record.id)
    if not violations:
        console.print("[green]No stored violations.[/green]")
        return

    table = Table(title="Violations", show_header=True, header_style="bold cyan")
    table.add_column("File", max_width=40)
    table.add_column("Line", justify="right", width=6)
    table.add_column("Type", width=18)
    table.add_column("Severity", width=9)
    table.add_column("Message", max_width=60)
    for v in violations:
        sev_style = _SEVERITY_STYLE.get(v.severity, "white")
        table.add_row(
            v.file_path,
            str(v.line_number) if v.line_number else "—",
            v.violation_type,
            f"[{sev_style}]{v.severity}[/{sev_style}]",
            v.message,
        )
    console.print(table)
