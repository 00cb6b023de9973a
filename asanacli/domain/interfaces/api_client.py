"""Interface for the remote project-management service.

Defines the capability contract the CLI depends on. The only production
implementation is ``AsanaClient``; tests substitute mocks or inject a fake
transport underneath it.
"""

import abc
from typing import List, Optional

from ..models.common import ListResponse
from ..models.resources import (
    Project, ProjectCreateRequest, Section, Story, Tag, Task,
    TaskCreateRequest, TaskUpdateRequest, Team, User, Workspace,
)


class ProjectManagementClient(abc.ABC):
    """Abstract Base Class for remote resource access.

    Every method either returns a decoded model or raises a ``CLIError``
    subclass produced by the request pipeline. Implementations must not
    re-classify those errors.
    """

    # --- Users & workspaces ---

    @abc.abstractmethod
    async def get_me(self) -> User:
        """Returns the authenticated user."""

    @abc.abstractmethod
    async def list_workspaces(self, limit: int = 0) -> ListResponse[Workspace]:
        pass

    @abc.abstractmethod
    async def get_workspace(self, gid: str) -> Workspace:
        pass

    # --- Projects ---

    @abc.abstractmethod
    async def list_projects(
        self, workspace: str, archived: bool = False, limit: int = 0, offset: Optional[str] = None
    ) -> ListResponse[Project]:
        pass

    @abc.abstractmethod
    async def get_project(self, gid: str) -> Project:
        pass

    @abc.abstractmethod
    async def create_project(self, request: ProjectCreateRequest) -> Project:
        pass

    # --- Tasks ---

    @abc.abstractmethod
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
        """Lists tasks by tag, project or workspace search (in that precedence)."""

    @abc.abstractmethod
    async def get_task(self, gid: str) -> Task:
        pass

    @abc.abstractmethod
    async def create_task(self, request: TaskCreateRequest) -> Task:
        pass

    @abc.abstractmethod
    async def update_task(self, gid: str, request: TaskUpdateRequest) -> Task:
        pass

    @abc.abstractmethod
    async def delete_task(self, gid: str) -> None:
        pass

    @abc.abstractmethod
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
        """Full-text task search within a workspace."""

    # --- Subtasks & dependencies ---

    @abc.abstractmethod
    async def list_subtasks(self, task_gid: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Task]:
        pass

    @abc.abstractmethod
    async def add_subtask(self, parent_gid: str, name: str) -> Task:
        pass

    @abc.abstractmethod
    async def list_dependencies(
        self, task_gid: str, opt_fields: Optional[List[str]] = None
    ) -> ListResponse[Task]:
        """Tasks that ``task_gid`` is waiting on."""

    @abc.abstractmethod
    async def list_dependents(self, task_gid: str) -> ListResponse[Task]:
        """Tasks waiting on ``task_gid``."""

    @abc.abstractmethod
    async def add_dependency(self, task_gid: str, depends_on_gid: str) -> None:
        pass

    @abc.abstractmethod
    async def remove_dependency(self, task_gid: str, depends_on_gid: str) -> None:
        pass

    # --- Stories ---

    @abc.abstractmethod
    async def list_stories(self, task_gid: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Story]:
        pass

    @abc.abstractmethod
    async def add_comment(self, task_gid: str, text: str) -> Story:
        pass

    # --- Tags, teams, sections ---

    @abc.abstractmethod
    async def list_tags(self, workspace: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Tag]:
        pass

    @abc.abstractmethod
    async def get_tag(self, gid: str) -> Tag:
        pass

    @abc.abstractmethod
    async def list_teams(self, organization: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Team]:
        pass

    @abc.abstractmethod
    async def list_user_teams(
        self, organization: str, user_gid: str = "me", limit: int = 0, offset: Optional[str] = None
    ) -> ListResponse[Team]:
        pass

    @abc.abstractmethod
    async def list_sections(self, project: str, limit: int = 0, offset: Optional[str] = None) -> ListResponse[Section]:
        pass

    @abc.abstractmethod
    async def add_task_to_section(self, section_gid: str, task_gid: str) -> None:
        pass

    @abc.abstractmethod
    async def aclose(self) -> None:
        """Releases the underlying transport."""
