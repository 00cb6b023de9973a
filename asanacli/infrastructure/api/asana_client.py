"""Concrete implementation of ProjectManagementClient for the Asana REST API.

Each method builds a path, wraps request bodies in the ``{"data": ...}``
envelope and names the decoder for the response. All transport, retry and
error handling is delegated to the RequestExecutor.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from asanacli.domain.errors import InvalidArgsError
from asanacli.domain.interfaces.api_client import ProjectManagementClient
from asanacli.domain.models.common import ListResponse, data_decoder
from asanacli.domain.models.resources import (
    Project, ProjectCreateRequest, Section, Story, Tag, Task, TaskCreateRequest,
    TaskUpdateRequest, Team, User, Workspace,
)
from asanacli.infrastructure.api.request_executor import RequestExecutor
from asanacli.infrastructure.config.settings import ClientConfig
from asanacli.infrastructure.monitoring.debug_tracer import DebugTracer
from asanacli.infrastructure.resilience.backoff import BackoffPolicy

logger = logging.getLogger(__name__)


def _with_query(path: str, params: Dict[str, Any]) -> str:
    """Appends the non-empty params as a query string."""
    present = {key: value for key, value in params.items() if value not in (None, "", 0)}
    if not present:
        return path
    return f"{path}?{urlencode(present, safe=',')}"


def _seg(gid: str) -> str:
    return quote(str(gid), safe="")


def _require(value: Optional[str], message: str) -> str:
    if not value:
        raise InvalidArgsError(message)
    return value


class AsanaClient(ProjectManagementClient):
    """Asana implementation of the ProjectManagementClient interface."""

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff: Optional[BackoffPolicy] = None,
        tracer: Optional[DebugTracer] = None,
        executor: Optional[RequestExecutor] = None,
    ):
        self.executor = executor or RequestExecutor(config, transport=transport, backoff=backoff, tracer=tracer)

    async def aclose(self) -> None:
        await self.executor.aclose()

    # --- Users & workspaces ---

    async def get_me(self) -> User:
        return await self.executor.get("/users/me", decode=data_decoder(User.from_dict), resource="user")

    async def list_workspaces(self, limit: int = 0) -> ListResponse[Workspace]:
        path = _with_query("/workspaces", {"limit": limit})
        return await self.executor.get(path, decode=ListResponse.decoder(Workspace.from_dict), resource="workspace")

    async def get_workspace(self, gid: str) -> Workspace:
        return await self.executor.get(
            f"/workspaces/{_seg(gid)}", decode=data_decoder(Workspace.from_dict), resource="workspace"
        )

    # --- Projects ---

    async def list_projects(
        self, workspace: str, archived: bool = False, limit: int = 0, offset: Optional[str] = None
    ) -> ListResponse[Project]:
        workspace = _require(workspace, "workspace is required")
        path = _with_query(f"/workspaces/{_seg(workspace)}/projects", {
            "limit": limit,
            "offset": offset,
            "archived": "true" if archived else None,
        })
        return await self.executor.get(path, decode=ListResponse.decoder(Project.from_dict), resource="project")

    async def get_project(self, gid: str) -> Project:
        return await self.executor.get(
            f"/projects/{_seg(gid)}", decode=data_decoder(Project.from_dict), resource="project"
        )

    async def create_project(self, request: ProjectCreateRequest) -> Project:
        _require(request.name, "project name is required")
        if not request.workspace and not request.team:
            raise InvalidArgsError("workspace or team is required")
        return await self.executor.post(
            "/projects", {"data": request.to_dict()}, decode=data_decoder(Project.from_dict), resource="project"
        )

    # --- Tasks ---

    async def list_tasks(
        self,
        project: Optional[str] = None,
        workspace: Optional[str] = None,
        tag: Optional[str] = None,
        assignee: Optional[str] = None,
        completed: Optional[bool] = None,
        limit: int = 0,
        offset: Optional[str] = None,
        opt_fields: Optional[List[str]] = None,
    ) -> ListResponse[Task]:
        is_search = False
        if tag:
            base = f"/tags/{_seg(tag)}/tasks"
        elif project:
            base = f"/projects/{_seg(project)}/tasks"
        elif workspace:
            base = f"/workspaces/{_seg(workspace)}/tasks/search"
            is_search = True
        else:
            raise InvalidArgsError("either project, tag, or workspace is required")

        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if assignee:
            params["assignee.any" if is_search else "assignee"] = assignee
        if completed is not None:
            params["completed"] = "true" if completed else "false"
        if opt_fields:
            params["opt_fields"] = ",".join(opt_fields)
        logger.debug(f"Listing tasks from {base}")
        return await self.executor.get(
            _with_query(base, params), decode=ListResponse.decoder(Task.from_dict), resource="task"
        )

    async def get_task(self, gid: str) -> Task:
        return await self.executor.get(f"/tasks/{_seg(gid)}", decode=data_decoder(Task.from_dict), resource="task")

    async def create_task(self, request: TaskCreateRequest) -> Task:
        _require(request.name, "task name is required")
        if not (request.workspace or request.projects or request.parent):
            raise InvalidArgsError("workspace, project or parent is required")
        return await self.executor.post(
            "/tasks", {"data": request.to_dict()}, decode=data_decoder(Task.from_dict), resource="task"
        )

    async def update_task(self, gid: str, request: TaskUpdateRequest) -> Task:
        if request.is_empty():
            raise InvalidArgsError("no fields to update")
        return await self.executor.put(
            f"/tasks/{_seg(gid)}", {"data": request.to_dict()}, decode=data_decoder(Task.from_dict), resource="task"
        )

    async def delete_task(self, gid: str) -> None:
        await self.executor.delete(f"/tasks/{_seg(gid)}", resource="task")

    async def search_tasks(
        self,
        workspace: str,
        text: str,
        project: Optional[str] = None,
        assignee: Optional[str] = None,
        completed: Optional[bool] = None,
        limit: int = 0,
        offset: Optional[str] = None,
        opt_fields: Optional[List[str]] = None,
    ) -> ListResponse[Task]:
        workspace = _require(workspace, "workspace is required")
        text = _require(text, "search text is required")
        params: Dict[str, Any] = {
            "text": text,
            "opt_fields": ",".join(opt_fields) if opt_fields else None,
            "limit": limit,
            "offset": offset,
            "projects.any": project,
            "assignee.any": assignee,
        }
        if completed is not None:
            params["completed"] = "true" if completed else "false"
        path = _with_query(f"/workspaces/{_seg(workspace)}/tasks/search", params)
        return await self.executor.get(path, decode=ListResponse.decoder(Task.from_dict), resource="task")

    # --- Subtasks & dependencies ---

    async def list_subtasks(self, task_gid: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Task]:
        task_gid = _require(task_gid, "task is required")
        path = _with_query(f"/tasks/{_seg(task_gid)}/subtasks", {"limit": limit, "offset": offset})
        return await self.executor.get(path, decode=ListResponse.decoder(Task.from_dict), resource="task")

    async def add_subtask(self, parent_gid: str, name: str) -> Task:
        parent_gid = _require(parent_gid, "parent task is required")
        _require(name, "subtask name is required")
        return await self.executor.post(
            f"/tasks/{_seg(parent_gid)}/subtasks",
            {"data": {"name": name}},
            decode=data_decoder(Task.from_dict),
            resource="task",
        )

    async def list_dependencies(
        self, task_gid: str, opt_fields: Optional[List[str]] = None
    ) -> ListResponse[Task]:
        task_gid = _require(task_gid, "task is required")
        path = _with_query(f"/tasks/{_seg(task_gid)}/dependencies", {
            "opt_fields": ",".join(opt_fields) if opt_fields else None,
        })
        return await self.executor.get(path, decode=ListResponse.decoder(Task.from_dict), resource="task")

    async def list_dependents(self, task_gid: str) -> ListResponse[Task]:
        task_gid = _require(task_gid, "task is required")
        return await self.executor.get(
            f"/tasks/{_seg(task_gid)}/dependents", decode=ListResponse.decoder(Task.from_dict), resource="task"
        )

    async def add_dependency(self, task_gid: str, depends_on_gid: str) -> None:
        await self._change_dependencies("addDependencies", task_gid, depends_on_gid)

    async def remove_dependency(self, task_gid: str, depends_on_gid: str) -> None:
        await self._change_dependencies("removeDependencies", task_gid, depends_on_gid)

    async def _change_dependencies(self, action: str, task_gid: str, depends_on_gid: str) -> None:
        task_gid = _require(task_gid, "task is required")
        depends_on_gid = _require(depends_on_gid, "dependency task is required")
        await self.executor.post(
            f"/tasks/{_seg(task_gid)}/{action}", {"data": {"dependencies": [depends_on_gid]}}, resource="task"
        )

    # --- Stories ---

    async def list_stories(self, task_gid: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Story]:
        path = _with_query(f"/tasks/{_seg(task_gid)}/stories", {"limit": limit, "offset": offset})
        return await self.executor.get(path, decode=ListResponse.decoder(Story.from_dict), resource="task")

    async def add_comment(self, task_gid: str, text: str) -> Story:
        _require(text, "comment text is required")
        return await self.executor.post(
            f"/tasks/{_seg(task_gid)}/stories",
            {"data": {"text": text}},
            decode=data_decoder(Story.from_dict),
            resource="task",
        )

    # --- Tags ---

    async def list_tags(self, workspace: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Tag]:
        workspace = _require(workspace, "workspace is required")
        path = _with_query(f"/workspaces/{_seg(workspace)}/tags", {"limit": limit, "offset": offset})
        return await self.executor.get(path, decode=ListResponse.decoder(Tag.from_dict), resource="tag")

    async def get_tag(self, gid: str) -> Tag:
        return await self.executor.get(f"/tags/{_seg(gid)}", decode=data_decoder(Tag.from_dict), resource="tag")

    # --- Teams ---

    async def list_teams(self, organization: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Team]:
        organization = _require(organization, "organization is required")
        path = _with_query(f"/organizations/{_seg(organization)}/teams", {
            "opt_fields": "name",
            "limit": limit,
            "offset": offset,
        })
        return await self.executor.get(path, decode=ListResponse.decoder(Team.from_dict), resource="team")

    async def list_user_teams(
        self, organization: str, user_gid: str = "me", limit: int = 0, offset: Optional[str] = None
    ) -> ListResponse[Team]:
        organization = _require(organization, "organization is required")
        path = _with_query(f"/users/{_seg(user_gid or 'me')}/teams", {
            "organization": organization,
            "opt_fields": "name",
            "limit": limit,
            "offset": offset,
        })
        return await self.executor.get(path, decode=ListResponse.decoder(Team.from_dict), resource="team")

    # --- Sections ---

    async def list_sections(self, project: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Section]:
        project = _require(project, "project is required")
        path = _with_query(f"/projects/{_seg(project)}/sections", {"limit": limit, "offset": offset})
        return await self.executor.get(path, decode=ListResponse.decoder(Section.from_dict), resource="section")

    async def add_task_to_section(self, section_gid: str, task_gid: str) -> None:
        _require(section_gid, "section is required")
        _require(task_gid, "task is required")
        await self.executor.post(
            f"/sections/{_seg(section_gid)}/addTask", {"data": {"task": task_gid}}, resource="section"
        )
