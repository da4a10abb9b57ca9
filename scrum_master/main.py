"""scrum-master CLI — all commands."""

import logging
from pathlib import Path
from typing import Annotated

import tomlkit
import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from scrum_master.errors import ScrumMasterError, TrackerError
from scrum_master.models import Breakdown, Priority, TicketRunReport
from scrum_master.pipeline import Pipeline
from scrum_master.providers.anthropic import AnthropicProvider
from scrum_master.providers.base import BreakdownProvider, TrackerProvider
from scrum_master.providers.jira import JiraProvider
from scrum_master.reporting import ConsoleReporter, Reporter
from scrum_master.settings import CONFIG_PATH, ScrumSettings, _list_profiles, get_settings
from scrum_master.storage import load_breakdown, save_analysis
from scrum_master.tickets import TicketCreator

app = typer.Typer(help="scrum-master: break project descriptions into Jira epics and stories", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Profile name from ~/.config/scrum-master/config.toml"),
]
DryRunOpt = Annotated[
    bool,
    typer.Option("--dry-run", "-d", help="Show what would be created without creating tickets"),
]
YesOpt = Annotated[bool, typer.Option("--yes", "-y", help="Create tickets without asking for confirmation")]

_PRIORITY_STYLE = {Priority.HIGH: "red", Priority.MEDIUM: "yellow", Priority.LOW: "green"}

# Written by `init`; values mirror ScrumSettings defaults plus credential placeholders
_PROFILE_TEMPLATE = {
    "anthropic_api_key": "your-anthropic-api-key-here",
    "anthropic_model": "claude-sonnet-4-20250514",
    "anthropic_timeout_seconds": 120,
    "anthropic_max_tokens": 4000,
    "chunk_size_chars": 15000,
    "retry_count": 3,
    "retry_delay_seconds": 5,
    "jira_base_url": "https://your-domain.atlassian.net",
    "jira_username": "your-email@example.com",
    "jira_api_token": "your-jira-api-token",
    "jira_project_key": "PROJ",
    "jira_timeout_seconds": 30,
    "mode": "full",
    "output_dir": "./output",
    "save_intermediate": True,
}


# ---------------------------------------------------------------------------
# Provider factories
# ---------------------------------------------------------------------------


def get_ai_provider(settings: ScrumSettings) -> BreakdownProvider:
    return AnthropicProvider(settings)


def get_tracker(settings: ScrumSettings) -> TrackerProvider:
    return JiraProvider(settings)


def get_reporter() -> Reporter:
    return ConsoleReporter()


def _creator(settings: ScrumSettings, reporter: Reporter) -> TicketCreator:
    if not settings.jira_project_key:
        rprint("[red]Error:[/red] jira_project_key is not set")
        raise typer.Exit(1)
    return TicketCreator(get_tracker(settings), settings.jira_project_key, reporter)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_breakdown(breakdown: Breakdown) -> Tree:
    """Return a rich tree of epics and stories."""
    tree = Tree(f"[bold]{escape(breakdown.project_name or 'Untitled project')}[/bold]")
    if breakdown.overview:
        tree.add(f"[dim]{escape(breakdown.overview)}[/dim]")
    for i, epic in enumerate(breakdown.epics, start=1):
        style = _PRIORITY_STYLE[epic.priority]
        chunk = f" [dim]chunk {epic.chunk}[/dim]" if epic.chunk is not None else ""
        node = tree.add(f"[bold]Epic {i}:[/bold] {escape(epic.title)} [{style}]{epic.priority.value}[/{style}]{chunk}")
        for j, story in enumerate(epic.stories, start=1):
            style = _PRIORITY_STYLE[story.priority]
            leaf = node.add(
                f"Story {i}.{j}: {escape(story.title)} "
                f"[cyan]{story.story_points} pts[/cyan] [{style}]{story.priority.value}[/{style}]"
            )
            for criterion in story.acceptance_criteria:
                leaf.add(f"[dim]• {escape(criterion)}[/dim]")
            if story.dependencies:
                leaf.add(f"[dim]Dependencies: {escape(', '.join(story.dependencies))}[/dim]")
    return tree


def _summary_table(breakdown: Breakdown) -> Table:
    table = Table(title="Summary")
    table.add_column("Epics", justify="right")
    table.add_column("Stories", justify="right")
    table.add_column("Story points", justify="right")
    table.add_column("Chunks", justify="right")
    table.add_row(
        str(breakdown.total_epics),
        str(breakdown.total_stories),
        str(breakdown.total_story_points),
        str(breakdown.processed_chunks),
    )
    return table


def show_breakdown(breakdown: Breakdown) -> None:
    rprint(render_breakdown(breakdown))
    rprint(_summary_table(breakdown))


def _report_run(report: TicketRunReport) -> None:
    rprint(f"[green]✓[/green] Created {len(report.epic_keys)} epic(s) and {len(report.story_keys)} story ticket(s)")
    for failure in report.story_failures:
        rprint(f"[yellow]Skipped:[/yellow] {escape(failure.story_title)} ({escape(failure.epic_title)})")


def _fail(stage: str, exc: Exception) -> typer.Exit:
    rprint(f"[red]Error:[/red] {stage}: {escape(str(exc))}")
    return typer.Exit(1)


def _confirmed(yes: bool) -> bool:
    if yes or typer.confirm("Do you want to create these tickets in Jira?", default=False):
        return True
    rprint("Ticket creation cancelled.")
    return False


def _create(settings: ScrumSettings, breakdown: Breakdown, yes: bool) -> None:
    if not _confirmed(yes):
        return
    creator = _creator(settings, get_reporter())
    try:
        report = creator.create_tickets(breakdown)
    except ScrumMasterError as exc:
        _report_run(creator.report)
        raise _fail("ticket creation", exc) from exc
    _report_run(report)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log HTTP and retry details")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


@app.command("process")
def process(
    input_file: Annotated[Path, typer.Argument(help="Project description (markdown or text)")],
    profile: ProfileOpt = None,
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Processing mode: full or analyze-only"),
    ] = None,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output directory for analysis files")] = None,
    dry_run: DryRunOpt = False,
    yes: YesOpt = False,
) -> None:
    """Analyze a project description and optionally create tickets."""
    if mode is not None and mode not in ("full", "analyze-only"):
        rprint(f"[red]Unknown mode '{escape(mode)}'. Valid: full, analyze-only[/red]")
        raise typer.Exit(1)

    base = get_settings(profile, require_ai=True)
    updates: dict = {}
    if mode:
        updates["mode"] = mode
    if output:
        updates["output_dir"] = output
    settings = base.model_copy(update=updates)
    creating = settings.mode == "full" and not dry_run
    if creating:
        settings = get_settings(profile, require_ai=True, require_tracker=True).model_copy(update=updates)

    reporter = get_reporter()
    reporter.title("Processing project description")
    reporter.info(f"Mode: {settings.mode}")
    pipeline = Pipeline(settings, get_ai_provider(settings), reporter)
    creator = _creator(settings, reporter) if creating else None

    def review(breakdown: Breakdown) -> bool:
        if settings.mode == "analyze-only" or settings.save_intermediate:
            try:
                analysis_path, summary_path = save_analysis(breakdown, settings.output_dir, settings.mode)
            except OSError as exc:
                raise _fail("saving analysis", exc) from exc
            rprint(f"[green]✓[/green] Saved full analysis to {analysis_path}")
            rprint(f"[green]✓[/green] Saved summary to {summary_path}")

        show_breakdown(breakdown)

        if settings.mode == "analyze-only":
            rprint("[green]✓[/green] Analysis completed and saved")
            return False
        if dry_run:
            rprint("[yellow]Dry run[/yellow] - no tickets will be created")
            return False
        return _confirmed(yes)

    try:
        _, report = pipeline.run(input_file, creator, review=review)
    except TrackerError as exc:
        if creator is not None:
            _report_run(creator.report)
        raise _fail("ticket creation", exc) from exc
    except ScrumMasterError as exc:
        raise _fail("analysis", exc) from exc
    if report is not None:
        _report_run(report)


@app.command("create-from-analysis")
def create_from_analysis(
    analysis_file: Annotated[Path, typer.Argument(help="Analysis JSON written by 'process'")],
    profile: ProfileOpt = None,
    dry_run: DryRunOpt = False,
    yes: YesOpt = False,
) -> None:
    """Create tickets from a previously saved analysis."""
    settings = get_settings(profile, require_tracker=not dry_run)
    try:
        breakdown = load_breakdown(analysis_file)
    except ScrumMasterError as exc:
        raise _fail("loading analysis", exc) from exc

    rprint(f"[green]✓[/green] Loaded analysis for project: {escape(breakdown.project_name)}")
    show_breakdown(breakdown)

    if dry_run:
        rprint("[yellow]Dry run[/yellow] - no tickets will be created")
        return

    _create(settings, breakdown, yes)


@app.command("test-connection")
def test_connection(profile: ProfileOpt = None) -> None:
    """Check tracker credentials and access to the configured project."""
    settings = get_settings(profile, require_tracker=True)
    creator = _creator(settings, get_reporter())
    try:
        creator.verify_connection()
    except ScrumMasterError as exc:
        raise _fail("connection check", exc) from exc


@app.command("init")
def init_cmd(
    profile: Annotated[str, typer.Option("--profile", "-p", help="Profile name to write")] = "default",
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing profile")] = False,
) -> None:
    """Write a template profile to ~/.config/scrum-master/config.toml."""
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    doc = tomlkit.load(CONFIG_PATH.open()) if CONFIG_PATH.exists() else tomlkit.document()

    if profile in _list_profiles(doc) and not force:
        rprint(f"[yellow]Profile '{escape(profile)}' already exists in {CONFIG_PATH}.[/yellow] Use --force to overwrite.")
        raise typer.Exit(0)

    doc[profile] = dict(_PROFILE_TEMPLATE)
    if "default_profile" not in doc:
        doc["default_profile"] = profile
    CONFIG_PATH.write_text(tomlkit.dumps(doc))
    CONFIG_PATH.chmod(0o600)

    rprint(f"[green]✓[/green] Profile '{escape(profile)}' written to {CONFIG_PATH}")
    rprint("[yellow]Warning:[/yellow] Edit the file and add your API keys before running 'process'.")


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile)

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def plain(val: object) -> str:
        return "[dim](not set)[/dim]" if val is None else escape(str(val))

    table = Table(title="scrum-master Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    for name in ScrumSettings.model_fields:
        value = getattr(settings, name)
        if name in ("anthropic_api_key", "jira_api_token"):
            table.add_row(name, mask(value.get_secret_value() if value else None))
        else:
            table.add_row(name, plain(value))

    rprint(table)
