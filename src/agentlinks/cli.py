"""
AgentLinks CLI - command-line interface for the conversation/commit linker.

Hook entry points (``capture-hook``, ``commit``) are called by editor, agent
and git hooks; the remaining commands query the link store.
"""

import json
import logging
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from agentlinks.logging_config import setup_logging

app = typer.Typer(
    name="agentlinks",
    help="AgentLinks - link AI coding assistant conversations to git commits",
    no_args_is_help=True,
)

console = Console()

DEFAULT_LIST_LIMIT = 10
MAX_MATCHED_SHOWN = 3


def _init_logging(context: str) -> None:
    try:
        setup_logging(context=context)
    except PermissionError:
        logging.basicConfig(level=logging.WARNING)


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    raise typer.Exit(1)


def _print_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _matched_summary(files: list[str]) -> str:
    shown = ", ".join(files[:MAX_MATCHED_SHOWN])
    return shown + ("..." if len(files) > MAX_MATCHED_SHOWN else "")


@app.command("capture-hook")
def capture_hook(
    event: Optional[str] = typer.Argument(
        None, help="Hook event name (afterFileEdit, stop, PostToolUse, Stop, ...)"
    ),
    event_option: Optional[str] = typer.Option(
        None, "--event", help="Hook event name (alternative to the argument)"
    ),
    agent: str = typer.Option("cursor", help="Agent that fired the hook"),
) -> None:
    """
    Process a hook payload from stdin.

    Called by editor and agent hooks. Unknown events are ignored.
    """
    from agentlinks.db.connection import LinkStore
    from agentlinks.exceptions import AgentLinksError
    from agentlinks.hooks.capture import capture_hook as run_capture
    from agentlinks.hooks.capture import read_stdin

    _init_logging("hook")

    raw = read_stdin()
    try:
        with LinkStore() as store:
            result = run_capture(store, event or event_option, agent=agent, raw_payload=raw)
    except (AgentLinksError, SQLAlchemyError, OSError) as e:
        _fail(f"Failed to capture hook: {e}")
        return

    if not result.success:
        _fail(result.message)
    console.print(escape(result.message))


@app.command()
def commit(
    repo: Optional[str] = typer.Option(None, help="Path to the git repository (default: cwd)"),
    hash: Optional[str] = typer.Option(None, "--hash", help="Commit hash (default: HEAD)"),
    branch: Optional[str] = typer.Option(None, help="Branch name (default: current branch)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Record a git commit and auto-link it to recent conversations.

    Intended for a post-commit hook.
    """
    from agentlinks.db.connection import LinkStore
    from agentlinks.exceptions import AgentLinksError
    from agentlinks.hooks.handlers import record_commit

    _init_logging("hook")

    try:
        with LinkStore() as store:
            result = record_commit(store, repo_path=repo, commit_hash=hash, branch=branch)
    except (AgentLinksError, SQLAlchemyError, OSError, ValueError) as e:
        _fail(f"Failed to record commit: {e}")
        return

    console.print(escape(result.message))
    if json_output:
        _print_json(result.data)


@app.command()
def link(
    conversation: str = typer.Option(..., help="Conversation id"),
    commit_hash: str = typer.Option(..., "--commit", help="Commit hash"),
    files: Optional[str] = typer.Option(None, help="Comma-separated list of matched files"),
    confidence: Optional[float] = typer.Option(None, help="Confidence 0-1 (default: 1.0)"),
) -> None:
    """Manually link a conversation to a commit."""
    from agentlinks.db.connection import LinkStore
    from agentlinks.exceptions import AgentLinksError
    from agentlinks.hooks.handlers import link_manually

    _init_logging("cli")

    matched = [f.strip() for f in files.split(",") if f.strip()] if files else None
    try:
        with LinkStore() as store:
            result = link_manually(
                store, conversation, commit_hash, files=matched, confidence=confidence
            )
    except ValueError as e:
        _fail(str(e))
        return
    except (AgentLinksError, SQLAlchemyError, OSError) as e:
        _fail(f"Failed to create link: {e}")
        return

    if not result.success:
        _fail(result.message)
    console.print(f"[green]✓[/green] {escape(result.message)}")


@app.command("list-conversation-links")
def list_conversation_links(
    conversation: Optional[str] = typer.Option(None, help="Conversation id"),
    workspace: Optional[str] = typer.Option(None, help="Filter by workspace path"),
    file: Optional[str] = typer.Option(None, help="Filter by file path"),
    limit: int = typer.Option(DEFAULT_LIST_LIMIT, help="Maximum conversations"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List commits linked to a conversation, or find conversations."""
    from agentlinks import schemas
    from agentlinks.db.connection import LinkStore
    from agentlinks.exceptions import AgentLinksError

    _init_logging("cli")

    record = None
    links = []
    results = []
    try:
        with LinkStore() as store:
            if conversation:
                record = store.get_conversation(conversation)
                if record is not None:
                    links = store.get_links_for_conversation(conversation)
            else:
                conversations = store.find_conversations(
                    workspace_root=workspace, file=file, limit=limit
                )
                results = [
                    (c, store.get_links_for_conversation(c.conversation_id))
                    for c in conversations
                ]
    except (AgentLinksError, SQLAlchemyError, OSError) as e:
        _fail(f"Failed to read link store: {e}")
        return

    if conversation:
        if record is None:
            _fail(f"Conversation not found: {conversation}")

        if json_output:
            _print_json(
                {
                    "conversation": schemas.ConversationResponse.model_validate(
                        record
                    ).model_dump(mode="json"),
                    "links": [schemas.linked_commit(item) for item in links],
                }
            )
            return

        console.print(f"[bold]Conversation:[/bold] {escape(record.conversation_id)}")
        console.print(f"  Title: {escape(record.title or '(untitled)')}")
        console.print(f"  Project: {escape(record.project_name)}")
        console.print(f"  Workspace: {escape(record.workspace_root)}")
        console.print(f"  Last Updated: {record.updated_at.isoformat()}")
        console.print()
        console.print(f"[bold]Linked Commits ({len(links)}):[/bold]")
        for item in links:
            if item.commit is not None:
                header = (
                    f"{item.commit.commit_hash[:7]} | {item.commit.branch} | "
                    f"{item.commit.message[:50]}"
                )
            else:
                header = f"{item.link.commit_hash[:7]} | (commit not recorded)"
            console.print(f"  {escape(header)}")
            console.print(
                f"    Confidence: {item.link.confidence * 100:.0f}% "
                f"({item.link.status.value})"
            )
            if item.link.matched_files:
                console.print(
                    f"    Matched: {escape(_matched_summary(item.link.matched_files))}"
                )
        return

    if json_output:
        _print_json(
            {
                "conversations": [
                    {
                        "conversation": schemas.ConversationResponse.model_validate(
                            c
                        ).model_dump(mode="json"),
                        "links": [schemas.linked_commit(item) for item in links],
                    }
                    for c, links in results
                ]
            }
        )
        return

    if not results:
        console.print("[yellow]No matching conversations found[/yellow]")
        return

    console.print(f"Found {len(results)} conversation(s):\n")
    for c, links in results:
        console.print(escape(c.conversation_id))
        console.print(f"  Title: {escape(c.title or '(untitled)')}")
        console.print(f"  Project: {escape(c.project_name)}")
        console.print(f"  Linked commits: {len(links)}")
        console.print()


@app.command("get-commit-links")
def get_commit_links(
    hash: str = typer.Option(..., "--hash", help="Commit hash"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the conversations linked to a commit."""
    from agentlinks import schemas
    from agentlinks.db.connection import LinkStore
    from agentlinks.exceptions import AgentLinksError

    _init_logging("cli")

    links = []
    try:
        with LinkStore() as store:
            record = store.get_commit(hash)
            if record is not None:
                links = store.get_links_for_commit(hash)
    except (AgentLinksError, SQLAlchemyError, OSError) as e:
        _fail(f"Failed to read link store: {e}")
        return

    if record is None:
        _fail(f"Commit not found: {hash}")

    if json_output:
        _print_json(
            {
                "commit": schemas.CommitResponse.model_validate(record).model_dump(mode="json"),
                "links": [schemas.linked_conversation(item) for item in links],
            }
        )
        return

    console.print(f"[bold]Commit:[/bold] {record.commit_hash}")
    console.print(f"  Branch: {escape(record.branch)}")
    console.print(f"  Author: {escape(record.author)}")
    console.print(f"  Message: {escape(record.message)}")
    console.print(f"  Date: {record.committed_at.isoformat()}")
    console.print(f"  Changed Files: {len(record.changed_files)}")
    console.print()
    console.print(f"[bold]Linked Conversations ({len(links)}):[/bold]")
    for item in links:
        console.print(f"  {escape(item.link.conversation_id)}")
        if item.conversation is not None:
            console.print(f"    Title: {escape(item.conversation.title or '(untitled)')}")
            console.print(f"    Project: {escape(item.conversation.project_name)}")
        console.print(
            f"    Confidence: {item.link.confidence * 100:.0f}% ({item.link.status.value})"
        )
        if item.link.matched_files:
            console.print(f"    Matched: {escape(_matched_summary(item.link.matched_files))}")


@app.command("file-context")
def file_context(
    path: str = typer.Argument(..., help="File path (relative to the repository)"),
    keyword: Optional[list[str]] = typer.Option(
        None, "--keyword", "-k", help="Keyword to look for in conversations (repeatable)"
    ),
    limit: int = typer.Option(DEFAULT_LIST_LIMIT, help="Maximum results per kind"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show conversations and commits that touched a file."""
    from agentlinks import schemas
    from agentlinks.db.connection import LinkStore
    from agentlinks.exceptions import AgentLinksError

    _init_logging("cli")

    try:
        with LinkStore() as store:
            context = store.get_file_context(path, keywords=keyword or None, limit=limit)
    except (AgentLinksError, SQLAlchemyError, OSError) as e:
        _fail(f"Failed to read link store: {e}")
        return

    if json_output:
        _print_json(schemas.file_context(context))
        return

    if context.is_empty:
        console.print(f"[yellow]No conversations or commits found for {escape(path)}[/yellow]")
        return

    console.print(f"[bold]Conversations ({len(context.conversations)}):[/bold]")
    for item in context.conversations:
        c = item.conversation
        console.print(
            f"  {c.conversation_id} [{item.relevance}] {c.title or '(untitled)'}",
            markup=False,
        )
        for match in item.keyword_matches:
            console.print(f"    {escape(match.keyword)}: {match.count} match(es)")
            for excerpt in match.excerpts:
                console.print(f"      {excerpt}", markup=False)

    console.print(f"[bold]Commits ({len(context.commits)}):[/bold]")
    for item in context.commits:
        console.print(
            f"  {item.commit.commit_hash[:7]} [{item.relevance}] {item.commit.message[:60]}",
            markup=False,
        )


@app.command()
def agents() -> None:
    """List conversation readers and whether their storage exists here."""
    from agentlinks.readers.registry import get_default_registry

    _init_logging("cli")

    table = Table(title="Conversation readers")
    table.add_column("Agent")
    table.add_column("Storage")
    table.add_column("Available")
    for reader in get_default_registry().readers:
        try:
            available = reader.is_available()
        except OSError:
            available = False
        table.add_row(
            reader.agent,
            reader.metadata.storage,
            "[green]yes[/green]" if available else "[dim]no[/dim]",
        )
    console.print(table)


if __name__ == "__main__":
    app()
