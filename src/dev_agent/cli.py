"""
Dev Agent Command Line Interface

Main entry point for the dev-agent CLI.
"""

import logging
import sys
from functools import wraps
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from dev_agent.exceptions import DevAgentError, ValidationError, get_error_code
from dev_agent.logging_config import format_env_help, get_log_path, is_secret_key, setup_logging

console = Console()

STATUS_CHOICES = ["todo", "in_progress", "done", "archived"]
SEVERITY_STYLES = {"error": "red", "warning": "yellow", "info": "dim"}


def handle_errors(func):
    """Report DevAgentError in red and exit with its error code."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DevAgentError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            if e.details:
                console.print(f"[dim]{e.details}[/dim]")
            if e.remediation:
                console.print(f"[yellow]To fix:[/yellow] {e.remediation}")
            sys.exit(get_error_code(e))
    return wrapper


def _open_store(ctx: click.Context):
    from dev_agent.config import resolve_database_config
    from dev_agent.storage import SchemaStore

    db_path = ctx.obj.get("db_path") if ctx.obj else None
    if not db_path:
        db_path = resolve_database_config(ctx.obj.get("root") if ctx.obj else None).path

    store = SchemaStore(db_path)
    store.initialize()
    if store.is_ephemeral:
        console.print("[dim]Using an in-memory store; changes will not be kept.[/dim]")
    ctx.call_on_close(store.close)
    return store


def _build_engine(store, root: Optional[Path] = None):
    from dev_agent.config import resolve_github_config
    from dev_agent.storage import ConfigRepository, GoalRepository
    from dev_agent.sync import GitHubClient, GitHubSyncEngine
    from dev_agent.validation import ValidationGate

    github = resolve_github_config(root=root, store=store)
    max_pages = int(ConfigRepository(store).get("sync.max_pages", 10))
    return GitHubSyncEngine(
        GitHubClient(github),
        GoalRepository(store),
        gate=ValidationGate(),
        max_pages=max_pages,
    )


def _print_results(results) -> None:
    for result in results:
        if result.valid and result.severity.value == "info":
            continue
        style = SEVERITY_STYLES.get(result.severity.value, "white")
        console.print(f"  [{style}]{result.severity.value:<7}[/{style}] {result.rule}: {result.message}")
        if result.suggestion:
            console.print(f"          [dim]{result.suggestion}[/dim]")


def _print_goal(goal) -> None:
    console.print(f"[bold]{goal.id}[/bold]  {goal.title}")
    console.print(f"  Status:      {goal.status}")
    if goal.branch_name:
        console.print(f"  Branch:      {goal.branch_name}")
    if goal.github_issue_id is not None:
        console.print(f"  Issue:       #{goal.github_issue_id}")
    console.print(f"  Created:     {goal.created_at}")
    console.print(f"  Updated:     {goal.updated_at}")
    if goal.completed_at:
        console.print(f"  Completed:   {goal.completed_at}")
    if goal.description:
        console.print()
        console.print(goal.description)


@click.group(epilog=format_env_help())
@click.version_option(package_name="dev-agent")
@click.option("--db", "db_path", type=click.Path(), help="SQLite store path (default: from config, else in-memory)")
@click.option("--root", type=click.Path(file_okay=False), help="Project root holding config.yaml and .env")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.option("--log", "write_log", is_flag=True, help="Also write a debug log under <root>/logs")
@click.pass_context
def main(ctx: click.Context, db_path: str, root: str, verbose: bool, write_log: bool):
    """Dev Agent: goal tracking with GitHub issue synchronization"""
    log_file = get_log_path(Path(root) if root else Path.cwd()) if write_log else None
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path
    ctx.obj["root"] = Path(root) if root else None


@main.command()
@click.pass_context
@handle_errors
def init(ctx: click.Context):
    """Create the store and apply pending migrations."""
    from dev_agent.storage import SchemaStore
    from dev_agent.config import resolve_database_config

    db_path = ctx.obj.get("db_path") or resolve_database_config(ctx.obj.get("root")).path
    store = SchemaStore(db_path)
    try:
        applied = store.initialize()
    finally:
        store.close()

    if applied:
        console.print(f"[green]✓[/green] Applied {len(applied)} migration(s): {', '.join(applied)}")
    else:
        console.print("[green]✓[/green] Store is up to date")
    console.print(f"[dim]Store: {db_path}[/dim]")


@main.command()
@click.pass_context
@handle_errors
def schema(ctx: click.Context):
    """Show migration ledger, tables and validation rules."""
    from dev_agent.validation import ValidationGate

    store = _open_store(ctx)

    table = Table(title="Migrations")
    table.add_column("Version")
    table.add_column("Applied at")
    for row in store.applied_migrations():
        table.add_row(row["version"], row["applied_at"])
    console.print(table)

    pending = store.pending_migrations()
    if pending:
        console.print(f"[yellow]Pending:[/yellow] {', '.join(pending)}")

    stats = store.get_stats()
    console.print(f"Tables: {', '.join(stats['tables'])}")
    console.print(f"Validation rules: {', '.join(ValidationGate().rule_names)}")


# ========== config ==========

@main.group()
def config():
    """Show or change settings."""
    pass


@config.command("show")
@click.pass_context
@handle_errors
def config_show(ctx: click.Context):
    """Show merged settings (secrets masked)."""
    from dev_agent.config import default_providers, merge_providers

    store = _open_store(ctx)
    settings = merge_providers(default_providers(ctx.obj.get("root"), store))

    table = Table(title="Settings")
    table.add_column("Key")
    table.add_column("Value")
    for key in sorted(settings):
        value = "********" if is_secret_key(key) else str(settings[key])
        table.add_row(key, value)
    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
@handle_errors
def config_set(ctx: click.Context, key: str, value: str):
    """Store a setting, e.g. github.owner octocat."""
    from dev_agent.storage import ConfigRepository
    from dev_agent.validators import validate_setting

    is_valid, message = validate_setting(key, value)
    if not is_valid:
        raise ValidationError(f"Invalid value for {key}: {message}", field=key)

    store = _open_store(ctx)
    repo = ConfigRepository(store)
    existing = repo.get_entry(key)
    repo.set(key, value, value_type=existing["type"] if existing else "string")
    console.print(f"[green]✓[/green] {key} saved")


# ========== goal ==========

@main.group()
def goal():
    """Manage goals."""
    pass


@goal.command("add")
@click.argument("title")
@click.option("--description", "-d", help="Goal description")
@click.option("--issue", type=int, help="Linked GitHub issue number")
@click.option("--strict", is_flag=True, help="Stop at the first failing error rule")
@click.pass_context
@handle_errors
def goal_add(ctx: click.Context, title: str, description: str, issue: int, strict: bool):
    """Create a goal."""
    from dev_agent.goal_service import GoalService
    from dev_agent.storage import GoalRepository

    store = _open_store(ctx)
    service = GoalService(GoalRepository(store))
    outcome = service.create_goal(title, description=description, github_issue_id=issue, strict=strict)

    _print_results(outcome.results)
    if not outcome.persisted:
        console.print("[red]✗[/red] Goal was not created")
        sys.exit(1)
    console.print(f"[green]✓[/green] Created {outcome.goal.id}")


@goal.command("list")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Filter by status")
@click.pass_context
@handle_errors
def goal_list(ctx: click.Context, status: str):
    """List goals, newest first."""
    from dev_agent.storage import GoalRepository

    goals = GoalRepository(_open_store(ctx)).list(status)
    if not goals:
        console.print("[dim]No goals.[/dim]")
        return

    table = Table()
    table.add_column("ID")
    table.add_column("Status")
    table.add_column("Title")
    table.add_column("Issue")
    table.add_column("Branch")
    for g in goals:
        issue = f"#{g.github_issue_id}" if g.github_issue_id is not None else ""
        table.add_row(g.id, g.status, g.title, issue, g.branch_name or "")
    console.print(table)


@goal.command("show")
@click.argument("goal_id")
@click.pass_context
@handle_errors
def goal_show(ctx: click.Context, goal_id: str):
    """Show one goal."""
    from dev_agent.storage import GoalRepository

    found = GoalRepository(_open_store(ctx)).find_by_id(goal_id)
    if found is None:
        raise ValidationError(f"Goal {goal_id} not found", field="goal_id")
    _print_goal(found)


@goal.command("status")
@click.argument("goal_id")
@click.argument("new_status", type=click.Choice(STATUS_CHOICES))
@click.option("--branch", help="Feature branch for the goal")
@click.option("--push/--no-push", default=False, help="Mirror the change to the linked issue")
@click.pass_context
@handle_errors
def goal_status(ctx: click.Context, goal_id: str, new_status: str, branch: str, push: bool):
    """Change a goal's status."""
    from dev_agent.goal_service import GoalService
    from dev_agent.storage import GoalRepository

    store = _open_store(ctx)
    engine = _build_engine(store, ctx.obj.get("root")) if push else None
    service = GoalService(GoalRepository(store), engine=engine)
    outcome = service.change_status(goal_id, new_status, branch_name=branch, push=push)

    _print_results(outcome.results)
    if not outcome.persisted and not outcome.results:
        console.print(f"[dim]{goal_id} is already {new_status}[/dim]")
        return
    if not outcome.persisted:
        console.print("[red]✗[/red] Status was not changed")
        sys.exit(1)
    console.print(f"[green]✓[/green] {goal_id} is now {new_status}")
    if outcome.push:
        console.print(f"[green]✓[/green] Issue #{outcome.push.issue_number} updated")
    if outcome.push_error:
        console.print(f"[yellow]⚠[/yellow] GitHub not updated: {outcome.push_error}")


@goal.command("delete")
@click.argument("goal_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
@handle_errors
def goal_delete(ctx: click.Context, goal_id: str, yes: bool):
    """Permanently delete a goal."""
    from dev_agent.storage import GoalRepository

    if not yes:
        click.confirm(f"Delete {goal_id}?", abort=True)
    if GoalRepository(_open_store(ctx)).delete(goal_id):
        console.print(f"[green]✓[/green] Deleted {goal_id}")
    else:
        console.print(f"[yellow]⚠[/yellow] No goal {goal_id}")


# ========== aid ==========

@main.group()
def aid():
    """Mint and inspect identifiers."""
    pass


@aid.command("new")
@click.argument("prefix")
@click.option("--count", "-n", default=1, type=int, help="Number of ids")
@click.option("--length", type=int, help="Total id length")
@click.option("--timestamp", is_flag=True, help="Include a timestamp fragment")
@click.option("--counter", is_flag=True, help="Include a counter fragment")
@handle_errors
def aid_new(prefix: str, count: int, length: int, timestamp: bool, counter: bool):
    """Mint ids for PREFIX (g, d, f, a, s, p)."""
    from dev_agent.aid import AIDGenerator

    overrides = {"use_timestamp": timestamp, "use_counter": counter}
    if length:
        overrides["id_length"] = length
    generator = AIDGenerator(**overrides)
    for _ in range(count):
        console.print(generator.generate_unique(prefix))


@aid.command("check")
@click.argument("value")
def aid_check(value: str):
    """Validate and describe an id."""
    from dev_agent.aid import get_entity_type_description, is_valid_aid, parse_aid

    if not is_valid_aid(value):
        console.print(f"[red]✗[/red] {value} is not a valid AID")
        sys.exit(1)

    console.print(f"[green]✓[/green] {value}: {get_entity_type_description(value)}")
    for part, fragment in parse_aid(value).items():
        console.print(f"  {part}: {fragment}")


# ========== github ==========

@main.group()
def github():
    """Synchronize with GitHub issues."""
    pass


@github.command("sync")
@click.pass_context
@handle_errors
def github_sync(ctx: click.Context):
    """Import open issues under the Todo milestone."""
    store = _open_store(ctx)
    engine = _build_engine(store, ctx.obj.get("root"))
    engine.initialize()

    result = engine.pull()
    console.print(f"[green]✓[/green] {result.message}")
    for error in result.errors:
        console.print(f"  [yellow]⚠[/yellow] {error.message}")


@github.command("push")
@click.argument("goal_id", required=False)
@click.pass_context
@handle_errors
def github_push(ctx: click.Context, goal_id: Optional[str]):
    """Push goal status to linked issues (all linked goals if no id)."""
    from dev_agent.storage import GoalRepository

    store = _open_store(ctx)
    engine = _build_engine(store, ctx.obj.get("root"))
    engine.initialize()

    repository = GoalRepository(store)
    if goal_id:
        found = repository.find_by_id(goal_id)
        if found is None:
            raise ValidationError(f"Goal {goal_id} not found", field="goal_id")
        goals = [found]
    else:
        goals = [g for g in repository.list() if g.github_issue_id is not None]

    result = engine.push_many(goals)
    console.print(f"[green]✓[/green] {result.message}")
    for error in result.errors:
        console.print(f"  [yellow]⚠[/yellow] {error.message}")


@github.command("check-pr")
@click.argument("goal_id")
@click.option("--complete", is_flag=True, help="Mark the goal done when merged")
@click.pass_context
@handle_errors
def github_check_pr(ctx: click.Context, goal_id: str, complete: bool):
    """Check whether the goal's branch has a merged pull request."""
    from dev_agent.goal_service import GoalService
    from dev_agent.storage import GoalRepository

    store = _open_store(ctx)
    engine = _build_engine(store, ctx.obj.get("root"))
    repository = GoalRepository(store)

    found = repository.find_by_id(goal_id)
    if found is None:
        raise ValidationError(f"Goal {goal_id} not found", field="goal_id")

    check = engine.check_pull_request(found)
    if not check.merged:
        console.print(f"[dim]No merged pull request for {goal_id}[/dim]")
        return

    console.print(f"[green]✓[/green] Pull request #{check.number} merged at {check.merged_at}")
    if complete:
        outcome = GoalService(repository, engine=engine).change_status(goal_id, "done")
        _print_results(outcome.results)
        if outcome.persisted:
            console.print(f"[green]✓[/green] {goal_id} is now done")


if __name__ == "__main__":
    main()
