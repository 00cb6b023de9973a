"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), checks the inputs
that can be validated locally, then calls the ProjectManagementClient and
hands the result to the OutputFormatter. Typed errors are not caught here;
the entry point renders them and picks the exit code.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from asanacli.domain.errors import AuthError, GeneralError, InvalidArgsError
from asanacli.domain.interfaces.api_client import ProjectManagementClient
from asanacli.domain.interfaces.output import OutputFormatter
from asanacli.domain.models.common import drop_none
from asanacli.domain.models.resources import ProjectCreateRequest, TaskCreateRequest, TaskUpdateRequest
from asanacli.infrastructure.config.settings import ClientConfig, Settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ClientConfig], ProjectManagementClient]
ClientCall = Callable[[ProjectManagementClient], Awaitable[Any]]

TOKEN_ENV_VAR = "ASANA_ACCESS_TOKEN"

DEFAULT_SEARCH_LIMIT = 20
DEPENDENCY_FIELDS = ["name", "completed"]
READY_FIELDS = ["name", "completed", "dependencies", "dependencies.completed"]


class CommandHandler:
    """Handles incoming commands and delegates to the API client."""

    def __init__(self, settings: Settings, client_factory: ClientFactory, output: OutputFormatter):
        """Initializes the CommandHandler.

        Args:
            settings: Effective settings for this invocation.
            client_factory: Builds a client from the executor configuration.
                Called at most once per command, after local validation.
            output: Formatter for results.
        """
        self.settings = settings
        self.client_factory = client_factory
        self.output = output

    # --- Helpers ---

    def require_auth(self) -> None:
        if not self.settings.access_token:
            raise AuthError(f"{TOKEN_ENV_VAR} environment variable not set")

    def require_workspace(self, workspace: Optional[str] = None) -> str:
        """Returns the explicit workspace or the configured default."""
        resolved = workspace or self.settings.workspace
        if not resolved:
            raise InvalidArgsError("no workspace specified (use --workspace or set ASANA_WORKSPACE)")
        return resolved

    def require_project(self, project: Optional[str]) -> str:
        if not project:
            raise InvalidArgsError("no project specified (use --project)")
        return project

    def dry_run(self, **details: Any) -> bool:
        """Prints what a mutation would send when --dry-run is active."""
        if not self.settings.dry_run:
            return False
        logger.info(f"Dry run, skipping API call: {details}")
        self.output.print({"dry_run": True, **drop_none(details)})
        return True

    async def _call(self, call: ClientCall) -> Any:
        """Runs one client call and always releases the client."""
        client = self.client_factory(self.settings.client_config())
        try:
            return await call(client)
        finally:
            await client.aclose()

    async def _show(self, call: ClientCall) -> None:
        self.output.print(await self._call(call))

    # --- Users & workspaces ---

    async def handle_me(self) -> None:
        self.require_auth()
        await self._show(lambda client: client.get_me())

    async def handle_me_teams(self, limit: int = 0) -> None:
        self.require_auth()
        organization = self.require_workspace()
        await self._show(lambda client: client.list_user_teams(organization, "me", limit=limit))

    async def handle_workspace_list(self, limit: int = 0) -> None:
        self.require_auth()
        await self._show(lambda client: client.list_workspaces(limit=limit))

    async def handle_workspace_get(self, gid: str) -> None:
        self.require_auth()
        await self._show(lambda client: client.get_workspace(gid))

    # --- Projects ---

    async def handle_project_list(self, archived: bool = False, limit: int = 0, offset: Optional[str] = None) -> None:
        self.require_auth()
        workspace = self.require_workspace()
        await self._show(lambda client: client.list_projects(workspace, archived=archived, limit=limit, offset=offset))

    async def handle_project_get(self, gid: str) -> None:
        self.require_auth()
        await self._show(lambda client: client.get_project(gid))

    async def handle_project_create(
        self, name: str, team: Optional[str] = None, notes: Optional[str] = None, color: Optional[str] = None
    ) -> None:
        self.require_auth()
        workspace = self.require_workspace()
        request = ProjectCreateRequest(name=name, notes=notes, color=color)
        team = team or self.settings.team
        # A team-scoped project is created in the team's workspace
        if team:
            request.team = team
        else:
            request.workspace = workspace

        if self.dry_run(request=request.to_dict()):
            return
        await self._show(lambda client: client.create_project(request))

    # --- Tasks ---

    async def handle_task_list(
        self,
        project: Optional[str] = None,
        tag: Optional[str] = None,
        assignee: Optional[str] = None,
        completed: Optional[bool] = None,
        limit: int = 0,
        offset: Optional[str] = None,
    ) -> None:
        self.require_auth()
        workspace = None
        if not project and not tag:
            workspace = self.require_workspace()
        await self._show(lambda client: client.list_tasks(
            project=project,
            workspace=workspace,
            tag=tag,
            assignee=assignee,
            completed=completed,
            limit=limit,
            offset=offset,
        ))

    async def handle_task_get(self, gid: str) -> None:
        self.require_auth()
        await self._show(lambda client: client.get_task(gid))

    async def handle_task_create(
        self,
        name: str,
        notes: Optional[str] = None,
        assignee: Optional[str] = None,
        due_on: Optional[str] = None,
        projects: Optional[List[str]] = None,
        parent: Optional[str] = None,
    ) -> None:
        self.require_auth()
        request = TaskCreateRequest(
            name=name,
            notes=notes,
            assignee=assignee,
            due_on=due_on,
            projects=list(projects or []),
            parent=parent,
        )
        if not request.projects and not request.parent:
            request.workspace = self.require_workspace()

        if self.dry_run(request=request.to_dict()):
            return
        await self._show(lambda client: client.create_task(request))

    async def handle_task_update(
        self,
        gid: str,
        name: Optional[str] = None,
        notes: Optional[str] = None,
        assignee: Optional[str] = None,
        due_on: Optional[str] = None,
    ) -> None:
        self.require_auth()
        request = TaskUpdateRequest(name=name, notes=notes, assignee=assignee, due_on=due_on)
        if request.is_empty():
            raise InvalidArgsError("no fields to update")

        if self.dry_run(gid=gid, request=request.to_dict()):
            return
        await self._show(lambda client: client.update_task(gid, request))

    async def handle_task_complete(self, gid: str) -> None:
        self.require_auth()
        if self.dry_run(gid=gid, action="complete"):
            return
        await self._show(lambda client: client.update_task(gid, TaskUpdateRequest(completed=True)))

    async def handle_task_delete(self, gid: str) -> None:
        self.require_auth()
        if self.dry_run(gid=gid, action="delete"):
            return
        await self._call(lambda client: client.delete_task(gid))
        self.output.print({"deleted": True, "gid": gid})

    async def handle_search(
        self,
        text: str,
        project: Optional[str] = None,
        assignee: Optional[str] = None,
        include_completed: bool = False,
        limit: int = DEFAULT_SEARCH_LIMIT,
        offset: Optional[str] = None,
    ) -> None:
        self.require_auth()
        workspace = self.require_workspace()
        if not text:
            raise InvalidArgsError("search text is required")
        # Without --completed only open tasks are searched
        completed = None if include_completed else False

        options = {
            "workspace": workspace,
            "text": text,
            "project": project,
            "assignee": assignee,
            "completed": completed,
            "limit": limit,
            "offset": offset,
        }
        if self.dry_run(search_options=drop_none(options)):
            return
        await self._show(lambda client: client.search_tasks(**options))

    # --- Subtasks & dependencies ---

    async def handle_subtask_list(self, task_gid: str, limit: int = 0, offset: Optional[str] = None) -> None:
        self.require_auth()
        await self._show(lambda client: client.list_subtasks(task_gid, limit=limit, offset=offset))

    async def handle_subtask_add(self, parent_gid: str, name: str) -> None:
        self.require_auth()
        if not name:
            raise InvalidArgsError("subtask name is required")
        if self.dry_run(parent=parent_gid, name=name):
            return
        await self._show(lambda client: client.add_subtask(parent_gid, name))

    async def handle_dep_add(self, task_gid: str, depends_on: str) -> None:
        self.require_auth()
        if self.dry_run(task_gid=task_gid, depends_on=depends_on):
            return
        await self._call(lambda client: client.add_dependency(task_gid, depends_on))
        self.output.print({"task_gid": task_gid, "depends_on": depends_on, "created": True})

    async def handle_dep_list(self, task_gid: str) -> None:
        self.require_auth()

        async def both_directions(client: ProjectManagementClient) -> Dict[str, Any]:
            dependencies = await client.list_dependencies(task_gid)
            dependents = await client.list_dependents(task_gid)
            return {"task_gid": task_gid, "depends_on": dependencies.data, "dependents": dependents.data}

        await self._show(both_directions)

    async def handle_dep_rm(self, task_gid: str, depends_on: str) -> None:
        self.require_auth()
        if self.dry_run(task_gid=task_gid, removed_from=depends_on):
            return
        await self._call(lambda client: client.remove_dependency(task_gid, depends_on))
        self.output.print({"task_gid": task_gid, "removed_from": depends_on, "removed": True})

    async def handle_blocked(
        self, project: Optional[str] = None, assignee: Optional[str] = None, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> None:
        """Prints the open tasks that wait on at least one open dependency.

        One dependency lookup is made per open task, so ``limit`` bounds the
        number of calls as well as the output.
        """
        self.require_auth()
        project = self.require_project(project)
        if self.dry_run(project=project, assignee=assignee, limit=limit, action="blocked"):
            return

        async def find_blocked(client: ProjectManagementClient) -> Dict[str, Any]:
            open_tasks = await client.list_tasks(project=project, assignee=assignee, completed=False, limit=limit)
            blocked = []
            for task in open_tasks.data:
                dependencies = await client.list_dependencies(task.gid, opt_fields=DEPENDENCY_FIELDS)
                if any(not dep.completed for dep in dependencies.data):
                    blocked.append(task)
            logger.debug(f"{len(blocked)} of {len(open_tasks.data)} open tasks are blocked")
            return {"data": blocked}

        await self._show(find_blocked)

    async def handle_ready(
        self, project: Optional[str] = None, assignee: Optional[str] = None, limit: int = DEFAULT_SEARCH_LIMIT
    ) -> None:
        """Prints the open tasks whose dependencies are all completed."""
        self.require_auth()
        project = self.require_project(project)
        if self.dry_run(project=project, assignee=assignee, limit=limit, action="ready"):
            return

        async def find_ready(client: ProjectManagementClient) -> Dict[str, Any]:
            open_tasks = await client.list_tasks(
                project=project, assignee=assignee, completed=False, limit=limit, opt_fields=READY_FIELDS
            )
            ready = []
            for task in open_tasks.data:
                if task.dependencies is None:
                    raise GeneralError(
                        f"task {task.gid} missing dependency data - ensure opt_fields includes dependencies"
                    )
                if all(dep.completed for dep in task.dependencies):
                    ready.append(task)
            return {"data": ready}

        await self._show(find_ready)

    async def handle_comment_add(self, task_gid: str, text: str) -> None:
        self.require_auth()
        if not text:
            raise InvalidArgsError("comment text is required")
        if self.dry_run(task_gid=task_gid, text=text):
            return
        await self._show(lambda client: client.add_comment(task_gid, text))

    async def handle_comment_list(self, task_gid: str, limit: int = 0) -> None:
        self.require_auth()
        await self._show(lambda client: client.list_stories(task_gid, limit=limit))

    # --- Tags, teams, sections ---

    async def handle_tag_list(self, limit: int = 0) -> None:
        self.require_auth()
        workspace = self.require_workspace()
        await self._show(lambda client: client.list_tags(workspace, limit=limit))

    async def handle_tag_get(self, gid: str) -> None:
        self.require_auth()
        await self._show(lambda client: client.get_tag(gid))

    async def handle_team_list(self, limit: int = 0) -> None:
        self.require_auth()
        organization = self.require_workspace()
        await self._show(lambda client: client.list_teams(organization, limit=limit))

    async def handle_section_list(self, project: str, limit: int = 0) -> None:
        self.require_auth()
        if not project:
            raise InvalidArgsError("project is required")
        await self._show(lambda client: client.list_sections(project, limit=limit))

    async def handle_section_add_task(self, section_gid: str, task_gid: str) -> None:
        self.require_auth()
        if self.dry_run(section=section_gid, task=task_gid):
            return
        await self._call(lambda client: client.add_task_to_section(section_gid, task_gid))
        result: Dict[str, Any] = {"added": True, "section": section_gid, "task": task_gid}
        self.output.print(result)
