"""Command-line interface for lifetracker.

Built with Typer for commands and Rich for output.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .context import UserContext
from .db.models import Goal, Project, ReadingItem
from .db.schemas import (
    GoalCategory,
    GoalCreate,
    Genre,
    MilestoneCreate,
    Priority,
    ProjectCategory,
    ProjectCreate,
    ReadingItemCreate,
    ReadingPriority,
    ReadingType,
    StepCreate,
)
from .db.sqlite import get_db
from .errors import LifetrackerError
from .log import setup_logging

# Create the main app
app = typer.Typer(
    name="lifetracker",
    help="Track goals, projects and reading.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
goal_app = typer.Typer(help="Manage goals and their roadmaps.", no_args_is_help=True)
app.add_typer(goal_app, name="goal")

project_app = typer.Typer(help="Manage projects and milestones.", no_args_is_help=True)
app.add_typer(project_app, name="project")

reading_app = typer.Typer(help="Manage reading items and sessions.", no_args_is_help=True)
app.add_typer(reading_app, name="reading")

report_app = typer.Typer(help="Cross-entity dashboards.", no_args_is_help=True)
app.add_typer(report_app, name="report")

# Rich console for pretty output
console = Console()

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]
SHORT_ID = 8

STATUS_STYLES = {
    "achieved": "bold green",
    "completed": "bold green",
    "in_progress": "cyan",
    "active": "cyan",
    "reading": "cyan",
    "not_started": "dim",
    "planning": "dim",
    "to_read": "dim",
    "paused": "yellow",
    "on_hold": "yellow",
    "at_risk": "bold yellow",
    "overdue": "bold red",
    "cancelled": "strike dim",
    "abandoned": "strike dim",
}


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn manager errors into a printed message and exit code 1."""
    try:
        yield
    except LifetrackerError as e:
        print_error(str(e))
        raise typer.Exit(1)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        print_error(f"Invalid input{f' ({field})' if field else ''}: {first['msg']}")
        raise typer.Exit(1)


def user_context(ctx: typer.Context) -> UserContext:
    """Build the per-call context from the global options."""
    owner = (ctx.obj or {}).get("owner") or get_config().owner_id
    return UserContext(owner_id=owner)


def _expand_id(model, ctx: typer.Context, value: Optional[str]) -> Optional[str]:
    """Expand a unique ID prefix to the full ID; anything else passes through."""
    if ctx.resilient_parsing or not value or len(value) >= 36:
        return value
    owner = user_context(ctx).owner_id
    matches = [e.id for e in get_db().find(model, owner) if e.id.startswith(value)]
    return matches[0] if len(matches) == 1 else value


def goal_id_arg(ctx: typer.Context, value: Optional[str]) -> Optional[str]:
    return _expand_id(Goal, ctx, value)


def project_id_arg(ctx: typer.Context, value: Optional[str]) -> Optional[str]:
    return _expand_id(Project, ctx, value)


def reading_id_arg(ctx: typer.Context, value: Optional[str]) -> Optional[str]:
    return _expand_id(ReadingItem, ctx, value)


def format_status(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def format_progress(progress: int, width: int = 10) -> str:
    filled = round(progress * width / 100)
    return f"{'█' * filled}{'░' * (width - filled)} {progress}%"


def format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def format_summary_table(summaries: list, title: str) -> Table:
    """Create a rich table for a list of entity summaries."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", max_width=SHORT_ID)
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Category", style="green")
    table.add_column("Status")
    table.add_column("Progress")
    table.add_column("Target", justify="right")

    for summary in summaries:
        table.add_row(
            summary.id[:SHORT_ID],
            summary.title,
            summary.category,
            format_status(summary.calculated_status),
            format_progress(summary.progress, width=5),
            format_date(summary.target_date),
        )

    return table


def format_children_table(children: list, title: str, show_hours: bool = False) -> Table:
    """Create a rich table for roadmap steps or milestones."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Done", justify="center")
    table.add_column("Due", justify="right")
    if show_hours:
        table.add_column("Est. h", justify="right")
        table.add_column("Actual h", justify="right")

    for child in children:
        if child.completed:
            done = "[green]✓[/green]"
        elif child.is_overdue:
            done = "[red]overdue[/red]"
        else:
            done = "-"
        row = [str(child.order), child.title, done, format_date(child.due_date)]
        if show_hours:
            row.append(f"{child.estimated_hours:g}" if child.estimated_hours is not None else "-")
            row.append(f"{child.actual_hours:g}" if child.actual_hours is not None else "-")
        table.add_row(*row)

    return table


def format_deadline_table(entries: list, title: str) -> Table:
    """Create a rich table for deadline listings."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Kind", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Target", justify="right")
    table.add_column("Days", justify="right")
    table.add_column("Progress")
    table.add_column("Status")

    for entry in entries:
        if entry.days_overdue:
            days = f"[red]-{entry.days_overdue}[/red]"
        else:
            days = str(entry.days_until_deadline) if entry.days_until_deadline is not None else "-"
        table.add_row(
            entry.kind.value,
            entry.title,
            format_date(entry.target_date),
            days,
            format_progress(entry.progress),
            format_status(entry.derived_status),
        )

    return table


def format_overview_table(overview, title: str = "Overview") -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Total", str(overview.total))
    table.add_row("Completed", str(overview.completed))
    table.add_row("In Progress", str(overview.in_progress))
    table.add_row("Not Started", str(overview.not_started))
    table.add_row("At Risk", str(overview.at_risk))
    table.add_row("Overdue", str(overview.overdue))
    table.add_row("On Hold", str(overview.held))
    table.add_row("Cancelled", str(overview.cancelled))
    return table


def format_category_table(categories: list, title: str, label: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan")
    table.add_column(label, justify="right")
    for entry in categories:
        table.add_row(entry.category, str(entry.count))
    return table


def format_monthly_table(buckets: list, title: str = "Monthly Completions") -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Month")
    table.add_column("Total", justify="right")
    table.add_column("Goals", justify="right")
    table.add_column("Projects", justify="right")
    table.add_column("Reading", justify="right")
    table.add_column("Pages", justify="right")

    for bucket in buckets:
        reading = bucket.books + bucket.articles + bucket.audiobooks + bucket.other
        table.add_row(
            bucket.month_name,
            str(bucket.total_count),
            str(bucket.goals),
            str(bucket.projects),
            str(reading),
            f"{bucket.total_pages:,}",
        )

    return table


def show_status_panel(title: str, detail, extra: Optional[list[str]] = None) -> None:
    """Print the shared progress/status header for a detail view."""
    metrics = detail.time_metrics
    lines = [
        f"Progress: {format_progress(detail.progress, width=20)}",
        f"Status: {format_status(detail.calculated_status)}"
        f" [dim](stored: {detail.stored_status})[/dim]",
        f"Days active: {metrics.days_active}",
        f"Progress rate: {metrics.progress_rate}%/day",
    ]
    if metrics.days_until_deadline is not None:
        lines.append(f"Days until deadline: {metrics.days_until_deadline}")
    if metrics.estimated_completion:
        lines.append(f"Estimated completion: {format_date(metrics.estimated_completion)}")
    if not metrics.is_on_track:
        lines.append("[yellow]Behind schedule[/yellow]")
    if detail.is_overdue:
        lines.append("[bold red]Overdue[/bold red]")
    lines.extend(extra or [])
    console.print(Panel("\n".join(lines), title=f"[bold]{title}[/bold]"))


def print_json(model) -> None:
    console.print_json(model.model_dump_json())


# ============================================================================
# Global Options
# ============================================================================


@app.callback()
def main_callback(
    ctx: typer.Context,
    owner: Optional[str] = typer.Option(
        None, "--owner", help="Owner whose data to use (default: LIFETRACKER_OWNER)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log manager activity"),
) -> None:
    """Track goals, projects and reading."""
    config = get_config()
    setup_logging("INFO" if verbose else config.log_level, config.log_file)

    for problem in config.validate():
        print_warning(problem)

    ctx.obj = {"owner": owner or config.owner_id}


# ============================================================================
# Goal Commands
# ============================================================================


def _goals():
    from .goals import GoalManager

    return GoalManager()


@goal_app.command("add")
def goal_add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Goal title"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    category: GoalCategory = typer.Option(GoalCategory.OTHER, "--category", "-c"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p"),
    target: Optional[datetime] = typer.Option(
        None, "--target", "-t", formats=DATE_FORMATS, help="Target date"
    ),
    step: Optional[list[str]] = typer.Option(None, "--step", "-s", help="Roadmap step (repeatable)"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
) -> None:
    """Add a goal with an optional roadmap."""
    with handle_errors():
        data = GoalCreate(
            title=title,
            description=description,
            category=category,
            priority=priority,
            target_date=target,
            tags=tag or [],
            steps=[StepCreate(title=s) for s in step or []],
        )
        detail = _goals().create(user_context(ctx), data)
    print_success(f"Added goal: {detail.goal.title}")
    print_info(f"ID: {detail.goal.id}")


@goal_app.command("list")
def goal_list(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Stored or derived status"),
    category: Optional[GoalCategory] = typer.Option(None, "--category", "-c"),
) -> None:
    """List goals."""
    summaries = _goals().list_goals(
        user_context(ctx), status=status, category=category.value if category else None
    )
    if not summaries:
        print_info("No goals found.")
        return
    console.print(format_summary_table(summaries, f"Goals ({len(summaries)})"))


@goal_app.command("search")
def goal_search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to find in title, description or tags"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Stored or derived status"),
    category: Optional[GoalCategory] = typer.Option(None, "--category", "-c"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max results"),
) -> None:
    """Search goals."""
    summaries = _goals().search(
        user_context(ctx),
        query,
        category=category.value if category else None,
        status=status,
        limit=limit,
    )
    if not summaries:
        print_info(f"No goals found matching: {query}")
        return
    console.print(format_summary_table(summaries, f"Search: {query}"))


@goal_app.command("show")
def goal_show(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """Show a goal with progress and roadmap."""
    with handle_errors():
        detail = _goals().get_detail(user_context(ctx), goal_id)

    if as_json:
        print_json(detail)
        return

    stats = detail.child_stats
    extra = [f"Steps: {stats.completed}/{stats.total} ({stats.overdue} overdue)"]
    if detail.linked_projects or detail.linked_readings:
        extra.append(f"Linked progress: {detail.linked_progress}%")
    show_status_panel(detail.goal.title, detail, extra)

    if detail.goal.steps:
        console.print(format_children_table(detail.goal.steps, "Roadmap"))
    linked = [*detail.linked_projects, *detail.linked_readings]
    if linked:
        console.print(format_summary_table(linked, "Linked"))


@goal_app.command("step-add")
def goal_step_add(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    title: str = typer.Argument(..., help="Step title"),
    due: Optional[datetime] = typer.Option(None, "--due", formats=DATE_FORMATS),
) -> None:
    """Append a roadmap step."""
    with handle_errors():
        detail = _goals().add_step(user_context(ctx), goal_id, title, due_date=due)
    print_success(f"Added step {len(detail.goal.steps)} ({detail.progress}% complete)")


@goal_app.command("step-done")
def goal_step_done(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    order: int = typer.Argument(..., help="Step number"),
) -> None:
    """Mark a roadmap step complete."""
    with handle_errors():
        detail = _goals().complete_step(user_context(ctx), goal_id, order)
    print_success(f"Step {order} complete ({detail.progress}%)")
    if detail.stored_status == "achieved":
        console.print("[bold green]Goal achieved![/bold green]")


@goal_app.command("step-reopen")
def goal_step_reopen(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    order: int = typer.Argument(..., help="Step number"),
) -> None:
    """Mark a roadmap step incomplete."""
    with handle_errors():
        detail = _goals().reopen_step(user_context(ctx), goal_id, order)
    print_success(f"Step {order} reopened ({detail.progress}%)")


@goal_app.command("step-remove")
def goal_step_remove(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    order: int = typer.Argument(..., help="Step number"),
) -> None:
    """Remove a roadmap step."""
    with handle_errors():
        detail = _goals().remove_step(user_context(ctx), goal_id, order)
    print_success(f"Removed step {order} ({len(detail.goal.steps)} left)")


@goal_app.command("status")
def goal_status(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    status: str = typer.Argument(..., help="not_started, in_progress, achieved, paused, cancelled"),
) -> None:
    """Set a goal's stored status."""
    with handle_errors():
        detail = _goals().set_status(user_context(ctx), goal_id, status)
    print_success(f"Status set to {detail.stored_status}")


@goal_app.command("edit")
def goal_edit(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    title: Optional[str] = typer.Option(None, "--title"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    category: Optional[GoalCategory] = typer.Option(None, "--category", "-c"),
    priority: Optional[Priority] = typer.Option(None, "--priority", "-p"),
    target: Optional[datetime] = typer.Option(None, "--target", "-t", formats=DATE_FORMATS),
    clear_target: bool = typer.Option(False, "--clear-target", help="Remove the target date"),
) -> None:
    """Edit goal fields."""
    fields = _edit_fields(
        title=title,
        description=description,
        category=category,
        priority=priority,
        target_date=target,
    )
    if clear_target:
        fields["clear_target_date"] = True
    if not fields:
        print_warning("Nothing to update.")
        raise typer.Exit(1)
    with handle_errors():
        detail = _goals().edit(user_context(ctx), goal_id, **fields)
    print_success(f"Updated goal: {detail.goal.title}")


@goal_app.command("link-project")
def goal_link_project(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
) -> None:
    """Link a project to a goal."""
    with handle_errors():
        detail = _goals().link_project(user_context(ctx), goal_id, project_id)
    print_success(f"Linked project to goal: {detail.goal.title}")
    print_info(f"Linked progress: {detail.linked_progress}%")


@goal_app.command("link-reading")
def goal_link_reading(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    reading_id: str = typer.Argument(
        ..., help="Reading item ID or prefix", callback=reading_id_arg
    ),
) -> None:
    """Link a reading item to a goal."""
    with handle_errors():
        detail = _goals().link_reading(user_context(ctx), goal_id, reading_id)
    print_success(f"Linked reading item to goal: {detail.goal.title}")
    print_info(f"Linked progress: {detail.linked_progress}%")


@goal_app.command("delete")
def goal_delete(
    ctx: typer.Context,
    goal_id: str = typer.Argument(..., help="Goal ID or prefix", callback=goal_id_arg),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a goal and its roadmap."""
    if not yes and not typer.confirm(f"Delete goal {goal_id}?"):
        print_info("Cancelled.")
        raise typer.Exit(0)
    with handle_errors():
        _goals().delete(user_context(ctx), goal_id)
    print_success(f"Deleted goal {goal_id}")


@goal_app.command("categories")
def goal_categories(ctx: typer.Context) -> None:
    """Show goal categories in use."""
    categories = _goals().list_categories(user_context(ctx))
    if not categories:
        print_info("No goals found.")
        return
    console.print(format_category_table(categories, "Goal Categories", "Goals"))


@goal_app.command("dashboard")
def goal_dashboard(ctx: typer.Context) -> None:
    """Show the goal dashboard."""
    dashboard = _goals().get_dashboard(user_context(ctx))
    console.print(Panel("[bold]Goals[/bold]", style="magenta"))
    console.print(format_overview_table(dashboard.overview))
    if dashboard.upcoming_deadlines:
        console.print(format_deadline_table(dashboard.upcoming_deadlines, "Upcoming Deadlines"))
    if dashboard.overdue:
        console.print(format_deadline_table(dashboard.overdue, "Overdue"))


def _edit_fields(**fields) -> dict:
    return {name: value for name, value in fields.items() if value is not None}


# ============================================================================
# Project Commands
# ============================================================================


def _projects():
    from .projects import ProjectManager

    return ProjectManager()


@project_app.command("add")
def project_add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Project title"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    category: ProjectCategory = typer.Option(ProjectCategory.PERSONAL, "--category", "-c"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p"),
    target: Optional[datetime] = typer.Option(
        None, "--target", "-t", formats=DATE_FORMATS, help="Target completion date"
    ),
    goal: Optional[str] = typer.Option(
        None, "--goal", "-g", help="Linked goal ID or prefix", callback=goal_id_arg
    ),
    hours: Optional[float] = typer.Option(None, "--hours", help="Estimated total hours"),
    milestone: Optional[list[str]] = typer.Option(
        None, "--milestone", "-m", help="Milestone (repeatable)"
    ),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
) -> None:
    """Add a project with optional milestones."""
    with handle_errors():
        data = ProjectCreate(
            title=title,
            description=description,
            category=category,
            priority=priority,
            target_date=target,
            goal_id=goal,
            estimated_total_hours=hours,
            tags=tag or [],
            milestones=[MilestoneCreate(title=m) for m in milestone or []],
        )
        detail = _projects().create(user_context(ctx), data)
    print_success(f"Added project: {detail.project.title}")
    print_info(f"ID: {detail.project.id}")


@project_app.command("list")
def project_list(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Stored or derived status"),
    category: Optional[ProjectCategory] = typer.Option(None, "--category", "-c"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Include archived projects"),
) -> None:
    """List projects."""
    summaries = _projects().list_projects(
        user_context(ctx),
        status=status,
        category=category.value if category else None,
        include_archived=show_all,
    )
    if not summaries:
        print_info("No projects found.")
        return
    console.print(format_summary_table(summaries, f"Projects ({len(summaries)})"))


@project_app.command("search")
def project_search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to find in title, description or tags"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Stored or derived status"),
    category: Optional[ProjectCategory] = typer.Option(None, "--category", "-c"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max results"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Include archived projects"),
) -> None:
    """Search projects."""
    summaries = _projects().search(
        user_context(ctx),
        query,
        category=category.value if category else None,
        status=status,
        limit=limit,
        include_archived=show_all,
    )
    if not summaries:
        print_info(f"No projects found matching: {query}")
        return
    console.print(format_summary_table(summaries, f"Search: {query}"))


@project_app.command("show")
def project_show(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """Show a project with progress, milestones and hours."""
    with handle_errors():
        detail = _projects().get_detail(user_context(ctx), project_id)

    if as_json:
        print_json(detail)
        return

    stats = detail.child_stats
    hours = detail.hours
    extra = [
        f"Milestones: {stats.completed}/{stats.total} ({stats.overdue} overdue)",
        f"Hours: {hours.actual:g} of {hours.estimated:g} ({hours.remaining:g} remaining)",
    ]
    if detail.next_milestone:
        extra.append(f"Next milestone: {detail.next_milestone.title}")
    if detail.project.status_notes:
        extra.append(f"Notes: {detail.project.status_notes}")
    if detail.project.archived:
        extra.append("[dim]Archived[/dim]")
    show_status_panel(detail.project.title, detail, extra)

    if detail.project.milestones:
        console.print(
            format_children_table(detail.project.milestones, "Milestones", show_hours=True)
        )


@project_app.command("milestone-add")
def project_milestone_add(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    title: str = typer.Argument(..., help="Milestone title"),
    due: Optional[datetime] = typer.Option(None, "--due", formats=DATE_FORMATS),
    hours: Optional[float] = typer.Option(None, "--hours", help="Estimated hours"),
) -> None:
    """Append a milestone."""
    with handle_errors():
        detail = _projects().add_milestone(
            user_context(ctx), project_id, title, due_date=due, estimated_hours=hours
        )
    print_success(
        f"Added milestone {len(detail.project.milestones)} ({detail.progress}% complete)"
    )


@project_app.command("milestone-done")
def project_milestone_done(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    order: int = typer.Argument(..., help="Milestone number"),
    hours: Optional[float] = typer.Option(None, "--hours", help="Actual hours spent"),
) -> None:
    """Mark a milestone complete."""
    with handle_errors():
        detail = _projects().complete_milestone(
            user_context(ctx), project_id, order, actual_hours=hours
        )
    print_success(f"Milestone {order} complete ({detail.progress}%)")
    if detail.stored_status == "completed":
        console.print("[bold green]Project completed![/bold green]")


@project_app.command("milestone-reopen")
def project_milestone_reopen(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    order: int = typer.Argument(..., help="Milestone number"),
) -> None:
    """Mark a milestone incomplete."""
    with handle_errors():
        detail = _projects().reopen_milestone(user_context(ctx), project_id, order)
    print_success(f"Milestone {order} reopened ({detail.progress}%)")


@project_app.command("milestone-remove")
def project_milestone_remove(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    order: int = typer.Argument(..., help="Milestone number"),
) -> None:
    """Remove a milestone."""
    with handle_errors():
        detail = _projects().remove_milestone(user_context(ctx), project_id, order)
    print_success(f"Removed milestone {order} ({len(detail.project.milestones)} left)")


@project_app.command("reorder")
def project_reorder(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    orders: list[int] = typer.Argument(..., help="Current milestone numbers in the new sequence"),
) -> None:
    """Reorder milestones, e.g. `reorder ID 3 1 2`."""
    with handle_errors():
        detail = _projects().reorder_milestones(user_context(ctx), project_id, orders)
    print_success("Milestones reordered")
    console.print(format_children_table(detail.project.milestones, "Milestones"))


@project_app.command("status")
def project_status(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    status: str = typer.Argument(..., help="planning, active, on_hold, completed, cancelled"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Status notes"),
) -> None:
    """Set a project's stored status."""
    with handle_errors():
        detail = _projects().set_status(user_context(ctx), project_id, status, notes=notes)
    print_success(f"Status set to {detail.stored_status}")


@project_app.command("edit")
def project_edit(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    title: Optional[str] = typer.Option(None, "--title"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    category: Optional[ProjectCategory] = typer.Option(None, "--category", "-c"),
    priority: Optional[Priority] = typer.Option(None, "--priority", "-p"),
    target: Optional[datetime] = typer.Option(None, "--target", "-t", formats=DATE_FORMATS),
    hours: Optional[float] = typer.Option(None, "--hours", help="Estimated total hours"),
    clear_target: bool = typer.Option(False, "--clear-target", help="Remove the target date"),
) -> None:
    """Edit project fields."""
    fields = _edit_fields(
        title=title,
        description=description,
        category=category,
        priority=priority,
        target_date=target,
        estimated_total_hours=hours,
    )
    if clear_target:
        fields["clear_target_date"] = True
    if not fields:
        print_warning("Nothing to update.")
        raise typer.Exit(1)
    with handle_errors():
        detail = _projects().edit(user_context(ctx), project_id, **fields)
    print_success(f"Updated project: {detail.project.title}")


@project_app.command("archive")
def project_archive(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    undo: bool = typer.Option(False, "--undo", help="Unarchive instead"),
) -> None:
    """Archive (or unarchive) a project."""
    manager = _projects()
    with handle_errors():
        if undo:
            detail = manager.unarchive(user_context(ctx), project_id)
        else:
            detail = manager.archive(user_context(ctx), project_id)
    print_success(f"{'Unarchived' if undo else 'Archived'} project: {detail.project.title}")


@project_app.command("duplicate")
def project_duplicate(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    title: Optional[str] = typer.Option(None, "--title", help="Title of the copy"),
) -> None:
    """Copy a project and its milestones."""
    with handle_errors():
        detail = _projects().duplicate(user_context(ctx), project_id, title=title)
    print_success(f"Created copy: {detail.project.title}")
    print_info(f"ID: {detail.project.id}")


@project_app.command("delete")
def project_delete(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project ID or prefix", callback=project_id_arg),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a project and its milestones."""
    if not yes and not typer.confirm(f"Delete project {project_id}?"):
        print_info("Cancelled.")
        raise typer.Exit(0)
    with handle_errors():
        _projects().delete(user_context(ctx), project_id)
    print_success(f"Deleted project {project_id}")


@project_app.command("categories")
def project_categories(ctx: typer.Context) -> None:
    """Show project categories in use."""
    categories = _projects().list_categories(user_context(ctx))
    if not categories:
        print_info("No projects found.")
        return
    console.print(format_category_table(categories, "Project Categories", "Projects"))


@project_app.command("dashboard")
def project_dashboard(ctx: typer.Context) -> None:
    """Show the project dashboard."""
    dashboard = _projects().get_dashboard(user_context(ctx))
    console.print(Panel("[bold]Projects[/bold]", style="magenta"))
    console.print(format_overview_table(dashboard.overview))
    if dashboard.archived:
        print_info(f"{dashboard.archived} archived project(s) not shown")
    if dashboard.upcoming_deadlines:
        console.print(format_deadline_table(dashboard.upcoming_deadlines, "Upcoming Deadlines"))
    if dashboard.overdue:
        console.print(format_deadline_table(dashboard.overdue, "Overdue"))


# ============================================================================
# Reading Commands
# ============================================================================


def _reading():
    from .reading import ReadingManager

    return ReadingManager()


@reading_app.command("add")
def reading_add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Title"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    item_type: ReadingType = typer.Option(ReadingType.BOOK, "--type"),
    genre: Genre = typer.Option(Genre.OTHER, "--genre", "-g"),
    priority: ReadingPriority = typer.Option(ReadingPriority.MEDIUM, "--priority", "-p"),
    pages: Optional[int] = typer.Option(None, "--pages", help="Total pages"),
    page: int = typer.Option(0, "--page", help="Current page"),
    target: Optional[datetime] = typer.Option(
        None, "--target", "-t", formats=DATE_FORMATS, help="Finish-by date"
    ),
    goal: Optional[str] = typer.Option(
        None, "--goal", help="Linked goal ID or prefix", callback=goal_id_arg
    ),
    rating: Optional[int] = typer.Option(None, "--rating", "-r", min=1, max=5),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
) -> None:
    """Add a reading item."""
    with handle_errors():
        data = ReadingItemCreate(
            title=title,
            author=author,
            item_type=item_type,
            genre=genre,
            priority=priority,
            total_pages=pages,
            current_page=page,
            target_date=target,
            goal_id=goal,
            rating=rating,
            isbn=isbn,
        )
        detail = _reading().create(user_context(ctx), data)
    by = f" by {detail.item.author}" if detail.item.author else ""
    print_success(f"Added: {detail.item.title}{by}")
    print_info(f"ID: {detail.item.id}")


@reading_app.command("list")
def reading_list(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Stored or derived status"),
    genre: Optional[Genre] = typer.Option(None, "--genre", "-g"),
    item_type: Optional[ReadingType] = typer.Option(None, "--type"),
) -> None:
    """List reading items."""
    summaries = _reading().list_items(
        user_context(ctx),
        status=status,
        genre=genre.value if genre else None,
        item_type=item_type.value if item_type else None,
    )
    if not summaries:
        print_info("No reading items found.")
        return
    console.print(format_summary_table(summaries, f"Reading ({len(summaries)})"))


@reading_app.command("show")
def reading_show(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Reading item ID or prefix", callback=reading_id_arg),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """Show a reading item with pace and session analytics."""
    with handle_errors():
        detail = _reading().get_detail(user_context(ctx), item_id)

    if as_json:
        print_json(detail)
        return

    item = detail.item
    stats = detail.analytics
    pages = f"{item.current_page}/{item.total_pages}" if item.total_pages else str(item.current_page)
    extra = [
        f"Pages: {pages}",
        f"Pace: {stats.pages_per_day} pages/day",
    ]
    if stats.reading_speed:
        extra.append(f"Speed: {stats.reading_speed} pages/hour")
    if stats.projected_finish:
        extra.append(f"Projected finish: {format_date(stats.projected_finish)}")
    if stats.estimated_time_remaining:
        extra.append(f"Time remaining: ~{stats.estimated_time_remaining} min")
    if stats.total_sessions:
        extra.append(
            f"Sessions: {stats.total_sessions} ({stats.total_minutes} min,"
            f" avg {stats.average_session_length} min)"
        )
        extra.append(f"Streak: {stats.current_streak} days (best {stats.longest_streak})")
    show_status_panel(item.title, detail, extra)

    if detail.sessions:
        table = Table(title="Sessions", show_header=True, header_style="bold magenta")
        table.add_column("Date")
        table.add_column("Minutes", justify="right")
        table.add_column("Pages", justify="right")
        table.add_column("Notes", style="dim", max_width=40)
        for session in detail.sessions[-10:]:
            table.add_row(
                format_date(session.date),
                str(session.duration_minutes),
                str(session.pages_read),
                session.notes or "",
            )
        console.print(table)


@reading_app.command("progress")
def reading_progress(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Reading item ID or prefix", callback=reading_id_arg),
    page: int = typer.Argument(..., help="Current page"),
    minutes: Optional[int] = typer.Option(None, "--minutes", "-m", help="Record a session"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n"),
) -> None:
    """Update the current page."""
    with handle_errors():
        detail = _reading().update_progress(
            user_context(ctx), item_id, current_page=page, session_duration=minutes, notes=notes
        )
    print_success(f"{detail.item.title}: page {detail.item.current_page} ({detail.progress}%)")
    if detail.stored_status == "completed":
        console.print("[bold green]Finished![/bold green]")


@reading_app.command("session")
def reading_session(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Reading item ID or prefix", callback=reading_id_arg),
    minutes: Optional[int] = typer.Option(None, "--minutes", "-m"),
    pages: Optional[int] = typer.Option(None, "--pages", "-p", help="Pages read"),
    start: Optional[int] = typer.Option(None, "--start", help="Start page"),
    end: Optional[int] = typer.Option(None, "--end", help="End page"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n"),
    on: Optional[datetime] = typer.Option(None, "--date", formats=DATE_FORMATS),
) -> None:
    """Log a reading session."""
    with handle_errors():
        detail = _reading().log_session(
            user_context(ctx),
            item_id,
            duration=minutes,
            pages_read=pages,
            start_page=start,
            end_page=end,
            notes=notes,
            date=on,
        )
    print_success(
        f"Logged session on {detail.item.title}"
        f" ({detail.analytics.total_sessions} sessions, {detail.progress}%)"
    )


@reading_app.command("status")
def reading_status(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Reading item ID or prefix", callback=reading_id_arg),
    status: str = typer.Argument(..., help="to_read, reading, completed, on_hold, abandoned"),
) -> None:
    """Set a reading item's stored status."""
    with handle_errors():
        detail = _reading().set_status(user_context(ctx), item_id, status)
    print_success(f"Status set to {detail.stored_status}")


@reading_app.command("edit")
def reading_edit(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Reading item ID or prefix", callback=reading_id_arg),
    title: Optional[str] = typer.Option(None, "--title"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    pages: Optional[int] = typer.Option(None, "--pages", help="Total pages"),
    rating: Optional[int] = typer.Option(None, "--rating", "-r", min=1, max=5),
    target: Optional[datetime] = typer.Option(None, "--target", "-t", formats=DATE_FORMATS),
    clear_target: bool = typer.Option(False, "--clear-target", help="Remove the target date"),
) -> None:
    """Edit reading item fields."""
    fields = _edit_fields(
        title=title,
        author=author,
        total_pages=pages,
        rating=rating,
        target_date=target,
    )
    if clear_target:
        fields["clear_target_date"] = True
    if not fields:
        print_warning("Nothing to update.")
        raise typer.Exit(1)
    with handle_errors():
        detail = _reading().edit(user_context(ctx), item_id, **fields)
    print_success(f"Updated: {detail.item.title}")


@reading_app.command("delete")
def reading_delete(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Reading item ID or prefix", callback=reading_id_arg),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a reading item and its sessions."""
    if not yes and not typer.confirm(f"Delete reading item {item_id}?"):
        print_info("Cancelled.")
        raise typer.Exit(0)
    with handle_errors():
        _reading().delete(user_context(ctx), item_id)
    print_success(f"Deleted reading item {item_id}")


@reading_app.command("dashboard")
def reading_dashboard(ctx: typer.Context) -> None:
    """Show the reading dashboard."""
    dashboard = _reading().get_dashboard(user_context(ctx))
    stats = dashboard.stats
    goal = stats.goal_progress

    console.print(Panel("[bold]Reading[/bold]", style="magenta"))

    table = Table(title="Stats", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Currently Reading", str(stats.currently_reading))
    table.add_row("To Read", str(stats.to_read))
    table.add_row("Completed", str(stats.completed))
    table.add_row("This Year", str(stats.this_year))
    table.add_row("This Month", str(stats.this_month))
    table.add_row("Pages Read", f"{stats.pages_read:,}")
    table.add_row("Reading Streak", f"{dashboard.reading_streak} days")
    table.add_row(
        "Yearly Goal",
        f"{goal.current}/{goal.target} ({goal.percentage_complete}%)"
        + ("" if goal.on_track else " [yellow]behind[/yellow]"),
    )
    console.print(table)

    if dashboard.currently_reading:
        console.print(format_summary_table(dashboard.currently_reading, "Currently Reading"))
    if dashboard.genre_trends:
        trends = Table(title="Genres", show_header=True, header_style="bold magenta")
        trends.add_column("Genre", style="cyan")
        trends.add_column("Finished", justify="right")
        trends.add_column("Pages", justify="right")
        trends.add_column("Avg Rating", justify="right")
        for trend in dashboard.genre_trends:
            trends.add_row(
                trend.genre,
                str(trend.count),
                f"{trend.total_pages:,}",
                f"{trend.avg_rating:.1f}" if trend.avg_rating else "-",
            )
        console.print(trends)
    if dashboard.overdue:
        console.print(format_deadline_table(dashboard.overdue, "Overdue"))


@reading_app.command("heatmap")
def reading_heatmap(
    ctx: typer.Context,
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Year (default: current)"),
) -> None:
    """Show reading activity by day."""
    heatmap = _reading().get_heatmap(user_context(ctx), year=year)
    summary = heatmap.summary

    if not heatmap.days:
        print_info(f"No reading sessions in {heatmap.year}.")
        return

    shades = {1: "[green]░[/green]", 2: "[green]▒[/green]", 3: "[green]▓[/green]", 4: "[green]█[/green]"}
    table = Table(title=f"Reading Activity {heatmap.year}", show_header=True, header_style="bold magenta")
    table.add_column("Date")
    table.add_column("", justify="center")
    table.add_column("Minutes", justify="right")
    table.add_column("Pages", justify="right")
    table.add_column("Sessions", justify="right")
    for day in heatmap.days:
        table.add_row(
            day.date.isoformat(),
            shades[day.intensity],
            str(day.value),
            str(day.pages),
            str(day.sessions),
        )
    console.print(table)
    console.print(
        f"{summary.active_days} active days, {summary.total_minutes} min,"
        f" {summary.total_pages:,} pages, longest streak {summary.longest_streak} days"
    )


# ============================================================================
# Report Commands
# ============================================================================


@report_app.command("dashboard")
def report_dashboard(
    ctx: typer.Context,
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Year (default: current)"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """Show the home dashboard across goals, projects and reading."""
    from .reports import ReportManager

    dashboard = ReportManager().get_home_dashboard(user_context(ctx), year=year)

    if as_json:
        print_json(dashboard)
        return

    console.print(Panel(f"[bold]Dashboard {dashboard.year}[/bold]", style="magenta"))

    table = Table(title="Overview", show_header=True, header_style="bold magenta")
    table.add_column("", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Completed", justify="right")
    table.add_column("In Progress", justify="right")
    table.add_column("At Risk", justify="right")
    table.add_column("Overdue", justify="right")
    for label, overview in (
        ("Goals", dashboard.goals),
        ("Projects", dashboard.projects),
        ("Reading", dashboard.reading),
        ("All", dashboard.overview),
    ):
        table.add_row(
            label,
            str(overview.total),
            str(overview.completed),
            str(overview.in_progress),
            str(overview.at_risk),
            str(overview.overdue),
        )
    console.print(table)

    activity = dashboard.recent_activity
    console.print(
        f"This month: {activity.created_this_month} created,"
        f" {activity.completed_this_month} completed."
        f" Reading streak: {dashboard.reading_streak} days."
    )
    if dashboard.favorite_genre:
        console.print(f"Favorite genre: {dashboard.favorite_genre}")

    if dashboard.upcoming_deadlines:
        console.print(format_deadline_table(dashboard.upcoming_deadlines, "Upcoming Deadlines"))
    if dashboard.overdue:
        console.print(format_deadline_table(dashboard.overdue, "Overdue"))
    if any(bucket.total_count for bucket in dashboard.monthly_breakdown):
        console.print(format_monthly_table(dashboard.monthly_breakdown))


# ============================================================================
# Utility Commands
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"lifetracker version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
