"""Main entry point for the asana-cli application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.

Results are written to stdout as JSON. Every failure is written to stdout as
the ``{"error": {...}}`` envelope and the process exits with the error's
exit code.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Callable, Coroutine, List, NoReturn, Optional

import typer

from asanacli import __version__

# --- Core Layer ---
from asanacli.core.command_handler import CommandHandler

# --- Domain Layer ---
from asanacli.domain.errors import CLIError, InvalidArgsError, get_exit_code
from asanacli.domain.interfaces.api_client import ProjectManagementClient
from asanacli.domain.interfaces.output import OutputFormatter

# --- Infrastructure Layer ---
from asanacli.infrastructure.api.asana_client import AsanaClient
from asanacli.infrastructure.cli.output import JsonOutput, create_formatter
from asanacli.infrastructure.config.settings import (
    ClientConfig, Settings, get_settings, load_configuration, parse_duration,
)
from asanacli.infrastructure.monitoring.logger_setup import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Per-invocation dependencies stored on the Typer context."""
    settings: Settings
    output: OutputFormatter
    handler: CommandHandler


def create_client(config: ClientConfig) -> ProjectManagementClient:
    return AsanaClient(config)


def create_dependencies(
    workspace: Optional[str] = None,
    debug: bool = False,
    dry_run: bool = False,
    timeout: Optional[str] = None,
    config_path: Optional[Path] = None,
    output_format: str = "json",
) -> AppState:
    """Creates and wires up all dependencies for one invocation.

    This acts as the Composition Root.

    Raises:
        InvalidArgsError: For an unparseable timeout or unknown output format.
        GeneralError: If the config file exists but cannot be parsed.
    """
    try:
        output = create_formatter(output_format)
    except ValueError as e:
        raise InvalidArgsError(str(e)) from e

    timeout_s = None
    if timeout:
        try:
            timeout_s = parse_duration(timeout)
        except ValueError as e:
            raise InvalidArgsError(f"invalid --timeout: {e}") from e

    # 1. Load Configuration First
    file_loaded = load_configuration(config_path)
    settings = get_settings(
        workspace=workspace,
        debug=debug,
        dry_run=dry_run,
        timeout=timeout_s,
        config_file_loaded=file_loaded,
    )
    setup_logging(log_level=settings.log_level, log_file=settings.log_file)
    logger.debug(
        f"Settings resolved: workspace={settings.workspace or '-'}, timeout={settings.timeout}s, "
        f"debug={settings.debug}, dry_run={settings.dry_run}, config={settings.config_path}"
    )

    # 2. Wire the command handler
    handler = CommandHandler(settings=settings, client_factory=create_client, output=output)
    return AppState(settings=settings, output=output, handler=handler)


def fail(output: OutputFormatter, error: BaseException) -> NoReturn:
    """Prints the error envelope and exits with the mapped exit code."""
    output.print_error(error)
    raise typer.Exit(code=get_exit_code(error))


def run_command(ctx: typer.Context, command: Callable[[CommandHandler], Coroutine[Any, Any, None]]) -> None:
    """Runs an async handler method from a sync Typer command."""
    state: AppState = ctx.obj
    try:
        asyncio.run(command(state.handler))
    except CLIError as e:
        logger.debug(f"Command failed: {e!r}")
        fail(state.output, e)
    except Exception as e:
        logger.debug(f"Unexpected error executing command: {e}", exc_info=True)
        fail(state.output, e)


# --- Typer App Definition ---
app = typer.Typer(
    name="asana",
    help="CLI for Asana with JSON output. Set ASANA_ACCESS_TOKEN to authenticate.",
    add_completion=False,
    no_args_is_help=True,
)
me_app = typer.Typer(help="Show the authenticated user.")
workspace_app = typer.Typer(help="Workspace commands.", no_args_is_help=True)
project_app = typer.Typer(help="Project commands.", no_args_is_help=True)
task_app = typer.Typer(help="Task commands.", no_args_is_help=True)
comment_app = typer.Typer(help="Task comments.", no_args_is_help=True)
tag_app = typer.Typer(help="Tag commands.", no_args_is_help=True)
team_app = typer.Typer(help="Team commands.", no_args_is_help=True)
section_app = typer.Typer(help="Section commands.", no_args_is_help=True)
subtask_app = typer.Typer(help="Task subtasks.", no_args_is_help=True)
dep_app = typer.Typer(help="Task dependencies.", no_args_is_help=True)

app.add_typer(me_app, name="me")
app.add_typer(workspace_app, name="workspace")
app.add_typer(project_app, name="project")
app.add_typer(task_app, name="task")
task_app.add_typer(comment_app, name="comment")
task_app.add_typer(subtask_app, name="subtask")
task_app.add_typer(dep_app, name="dep")
app.add_typer(tag_app, name="tag")
app.add_typer(team_app, name="team")
app.add_typer(section_app, name="section")

# Shared options
LimitOption = Annotated[int, typer.Option("--limit", "-l", min=0, help="Maximum results per page (0 = server default).")]
OffsetOption = Annotated[Optional[str], typer.Option("--offset", help="Pagination offset from a previous next_page.")]
GidArgument = Annotated[str, typer.Argument(help="Resource GID.")]


@app.callback()
def main_callback(
    ctx: typer.Context,
    workspace: Annotated[Optional[str], typer.Option("--workspace", "-w", help="Override workspace GID.")] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Print HTTP requests/responses to stderr.")] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Preview mutations without executing.")] = False,
    timeout: Annotated[Optional[str], typer.Option("--timeout", help="HTTP request timeout, e.g. 30s or 500ms.")] = None,
    config: Annotated[Optional[Path], typer.Option("--config", help="Config file path (default ~/.config/asana-cli/config.yaml).")] = None,
    output_format: Annotated[str, typer.Option("--format", help="Output format: json or brief.")] = "json",
):
    """CLI tool for managing Asana tasks, designed for AI agents with JSON output."""
    try:
        ctx.obj = create_dependencies(
            workspace=workspace,
            debug=debug,
            dry_run=dry_run,
            timeout=timeout,
            config_path=config,
            output_format=output_format,
        )
    except CLIError as e:
        fail(JsonOutput(), e)


@app.command()
def version(ctx: typer.Context):
    """Print version information."""
    state: AppState = ctx.obj
    state.output.print({"version": __version__})


# --- me ---

@me_app.callback(invoke_without_command=True)
def me(ctx: typer.Context):
    """Show the authenticated user."""
    if ctx.invoked_subcommand is None:
        run_command(ctx, lambda handler: handler.handle_me())


@me_app.command(name="teams")
def me_teams(ctx: typer.Context, limit: LimitOption = 0):
    """List the teams the authenticated user belongs to in the workspace."""
    run_command(ctx, lambda handler: handler.handle_me_teams(limit=limit))


# --- workspace ---

@workspace_app.command(name="list")
def workspace_list(ctx: typer.Context, limit: LimitOption = 0):
    """List workspaces visible to the user."""
    run_command(ctx, lambda handler: handler.handle_workspace_list(limit=limit))


@workspace_app.command(name="get")
def workspace_get(ctx: typer.Context, gid: GidArgument):
    """Show one workspace."""
    run_command(ctx, lambda handler: handler.handle_workspace_get(gid))


# --- project ---

@project_app.command(name="list")
def project_list(
    ctx: typer.Context,
    archived: Annotated[bool, typer.Option("--archived", help="Include archived projects.")] = False,
    limit: LimitOption = 0,
    offset: OffsetOption = None,
):
    """List projects in the workspace."""
    run_command(ctx, lambda handler: handler.handle_project_list(archived=archived, limit=limit, offset=offset))


@project_app.command(name="get")
def project_get(ctx: typer.Context, gid: GidArgument):
    """Show one project."""
    run_command(ctx, lambda handler: handler.handle_project_get(gid))


@project_app.command(name="create")
def project_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Option("--name", "-n", help="Project name.")],
    team: Annotated[Optional[str], typer.Option("--team", help="Team GID (default from config).")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Project description.")] = None,
    color: Annotated[Optional[str], typer.Option("--color", help="Project color.")] = None,
):
    """Create a project."""
    run_command(ctx, lambda handler: handler.handle_project_create(name, team=team, notes=notes, color=color))


# --- task ---

@task_app.command(name="list")
def task_list(
    ctx: typer.Context,
    project: Annotated[Optional[str], typer.Option("--project", "-p", help="Project GID.")] = None,
    tag: Annotated[Optional[str], typer.Option("--tag", help="Tag GID.")] = None,
    assignee: Annotated[Optional[str], typer.Option("--assignee", "-a", help="Assignee GID or 'me'.")] = None,
    completed: Annotated[
        Optional[bool], typer.Option("--completed/--incomplete", help="Filter by completion state.")
    ] = None,
    limit: LimitOption = 0,
    offset: OffsetOption = None,
):
    """List tasks by tag, project or workspace search."""
    run_command(ctx, lambda handler: handler.handle_task_list(
        project=project, tag=tag, assignee=assignee, completed=completed, limit=limit, offset=offset,
    ))


@task_app.command(name="get")
def task_get(ctx: typer.Context, gid: GidArgument):
    """Show one task."""
    run_command(ctx, lambda handler: handler.handle_task_get(gid))


@task_app.command(name="create")
def task_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Option("--name", "-n", help="Task name.")],
    notes: Annotated[Optional[str], typer.Option("--notes", help="Task description.")] = None,
    assignee: Annotated[Optional[str], typer.Option("--assignee", "-a", help="Assignee GID or 'me'.")] = None,
    due_on: Annotated[Optional[str], typer.Option("--due", help="Due date (YYYY-MM-DD).")] = None,
    project: Annotated[Optional[List[str]], typer.Option("--project", "-p", help="Project GID (repeatable).")] = None,
    parent: Annotated[Optional[str], typer.Option("--parent", help="Parent task GID.")] = None,
):
    """Create a task."""
    run_command(ctx, lambda handler: handler.handle_task_create(
        name, notes=notes, assignee=assignee, due_on=due_on, projects=project, parent=parent,
    ))


@task_app.command(name="update")
def task_update(
    ctx: typer.Context,
    gid: GidArgument,
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="New name.")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="New description.")] = None,
    assignee: Annotated[Optional[str], typer.Option("--assignee", "-a", help="New assignee.")] = None,
    due_on: Annotated[Optional[str], typer.Option("--due", help="New due date (YYYY-MM-DD).")] = None,
):
    """Update fields of a task."""
    run_command(ctx, lambda handler: handler.handle_task_update(
        gid, name=name, notes=notes, assignee=assignee, due_on=due_on,
    ))


@task_app.command(name="complete")
def task_complete(ctx: typer.Context, gid: GidArgument):
    """Mark a task as complete."""
    run_command(ctx, lambda handler: handler.handle_task_complete(gid))


@task_app.command(name="delete")
def task_delete(ctx: typer.Context, gid: GidArgument):
    """Delete a task."""
    run_command(ctx, lambda handler: handler.handle_task_delete(gid))


@comment_app.command(name="add")
def comment_add(
    ctx: typer.Context,
    gid: Annotated[str, typer.Argument(help="Task GID.")],
    text: Annotated[str, typer.Argument(help="Comment text.")],
):
    """Add a comment to a task."""
    run_command(ctx, lambda handler: handler.handle_comment_add(gid, text))


@comment_app.command(name="list")
def comment_list(
    ctx: typer.Context,
    gid: Annotated[str, typer.Argument(help="Task GID.")],
    limit: LimitOption = 0,
):
    """List the stories (comments and activity) of a task."""
    run_command(ctx, lambda handler: handler.handle_comment_list(gid, limit=limit))


@subtask_app.command(name="list")
def subtask_list(
    ctx: typer.Context,
    gid: Annotated[str, typer.Argument(help="Parent task GID.")],
    limit: LimitOption = 0,
    offset: OffsetOption = None,
):
    """List the subtasks of a task."""
    run_command(ctx, lambda handler: handler.handle_subtask_list(gid, limit=limit, offset=offset))


@subtask_app.command(name="add")
def subtask_add(
    ctx: typer.Context,
    gid: Annotated[str, typer.Argument(help="Parent task GID.")],
    name: Annotated[str, typer.Option("--name", "-n", help="Subtask name.")],
):
    """Create a subtask under a task."""
    run_command(ctx, lambda handler: handler.handle_subtask_add(gid, name))


@dep_app.command(name="add")
def dep_add(
    ctx: typer.Context,
    gid: Annotated[str, typer.Argument(help="Task GID.")],
    depends_on: Annotated[str, typer.Argument(help="GID of the task it waits on.")],
):
    """Make a task wait on another task."""
    run_command(ctx, lambda handler: handler.handle_dep_add(gid, depends_on))


@dep_app.command(name="list")
def dep_list(ctx: typer.Context, gid: Annotated[str, typer.Argument(help="Task GID.")]):
    """Show what a task waits on and what waits on it."""
    run_command(ctx, lambda handler: handler.handle_dep_list(gid))


@dep_app.command(name="rm")
def dep_rm(
    ctx: typer.Context,
    gid: Annotated[str, typer.Argument(help="Task GID.")],
    depends_on: Annotated[str, typer.Argument(help="GID of the dependency to remove.")],
):
    """Remove a dependency from a task."""
    run_command(ctx, lambda handler: handler.handle_dep_rm(gid, depends_on))


# --- search / blocked / ready ---

ProjectFilterOption = Annotated[Optional[str], typer.Option("--project", "-p", help="Project GID.")]
AssigneeFilterOption = Annotated[Optional[str], typer.Option("--assignee", "-a", help="Assignee GID or 'me'.")]
ShortLimitOption = Annotated[int, typer.Option("--limit", "-l", min=0, help="Maximum results.")]


@app.command()
def search(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="Text to search for.")],
    project: ProjectFilterOption = None,
    assignee: AssigneeFilterOption = None,
    completed: Annotated[bool, typer.Option("--completed", help="Include completed tasks.")] = False,
    limit: ShortLimitOption = 20,
    offset: OffsetOption = None,
):
    """Search tasks in the workspace by text."""
    run_command(ctx, lambda handler: handler.handle_search(
        text, project=project, assignee=assignee, include_completed=completed, limit=limit, offset=offset,
    ))


@app.command()
def blocked(
    ctx: typer.Context,
    project: ProjectFilterOption = None,
    assignee: AssigneeFilterOption = None,
    limit: ShortLimitOption = 20,
):
    """List open tasks that wait on at least one open dependency."""
    run_command(ctx, lambda handler: handler.handle_blocked(project=project, assignee=assignee, limit=limit))


@app.command()
def ready(
    ctx: typer.Context,
    project: ProjectFilterOption = None,
    assignee: AssigneeFilterOption = None,
    limit: ShortLimitOption = 20,
):
    """List open tasks whose dependencies are all completed."""
    run_command(ctx, lambda handler: handler.handle_ready(project=project, assignee=assignee, limit=limit))


# --- tag / team / section ---

@tag_app.command(name="list")
def tag_list(ctx: typer.Context, limit: LimitOption = 0):
    """List tags in the workspace."""
    run_command(ctx, lambda handler: handler.handle_tag_list(limit=limit))


@tag_app.command(name="get")
def tag_get(ctx: typer.Context, gid: GidArgument):
    """Show one tag."""
    run_command(ctx, lambda handler: handler.handle_tag_get(gid))


@team_app.command(name="list")
def team_list(ctx: typer.Context, limit: LimitOption = 0):
    """List teams in the workspace's organization."""
    run_command(ctx, lambda handler: handler.handle_team_list(limit=limit))


@section_app.command(name="list")
def section_list(
    ctx: typer.Context,
    project: Annotated[str, typer.Option("--project", "-p", help="Project GID.")],
    limit: LimitOption = 0,
):
    """List sections of a project."""
    run_command(ctx, lambda handler: handler.handle_section_list(project, limit=limit))


@section_app.command(name="add-task")
def section_add_task(
    ctx: typer.Context,
    section: Annotated[str, typer.Argument(help="Section GID.")],
    task: Annotated[str, typer.Argument(help="Task GID.")],
):
    """Move a task into a section."""
    run_command(ctx, lambda handler: handler.handle_section_add_task(section, task))


def cli_entry_point():
    """Function called when running the installed script."""
    app()


if __name__ == "__main__":
    cli_entry_point()
