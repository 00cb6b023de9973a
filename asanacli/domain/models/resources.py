"""Domain models for the remote project-management resources.

Each entity parses itself from the ``data`` object of a response
(``from_dict``) and renders back to the wire shape (``to_dict``), leaving out
unset fields.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .common import GID, drop_none


def _ref(data: Optional[Dict[str, Any]]) -> Optional["AsanaResource"]:
    return AsanaResource.from_dict(data) if data else None


def _refs(items: Optional[List[Dict[str, Any]]]) -> List["AsanaResource"]:
    return [AsanaResource.from_dict(item) for item in items or []]


def _ref_dict(ref: Optional["AsanaResource"]) -> Optional[Dict[str, Any]]:
    return ref.to_dict() if ref is not None else None


def _refs_dict(refs: List["AsanaResource"]) -> Optional[List[Dict[str, Any]]]:
    return [ref.to_dict() for ref in refs] or None


def _tasks(items: Optional[List[Dict[str, Any]]]) -> Optional[List["Task"]]:
    # An absent key and an empty list mean different things for dependencies
    if items is None:
        return None
    return [Task.from_dict(item) for item in items]


# --- Entities ---

@dataclass
class AsanaResource:
    """Compact reference to another resource: ``{gid, name}``."""
    gid: GID
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AsanaResource":
        return cls(gid=GID(data["gid"]), name=data.get("name") or None)

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({"gid": self.gid, "name": self.name})


@dataclass
class User:
    gid: GID
    name: str
    email: Optional[str] = None
    resource_type: Optional[str] = None
    workspaces: List[AsanaResource] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            gid=GID(data["gid"]),
            name=data.get("name", ""),
            email=data.get("email") or None,
            resource_type=data.get("resource_type") or None,
            workspaces=_refs(data.get("workspaces")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "gid": self.gid,
            "name": self.name,
            "email": self.email,
            "resource_type": self.resource_type,
            "workspaces": _refs_dict(self.workspaces),
        })


@dataclass
class Workspace:
    gid: GID
    name: str
    is_organization: bool = False
    email_domains: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workspace":
        return cls(
            gid=GID(data["gid"]),
            name=data.get("name", ""),
            is_organization=bool(data.get("is_organization", False)),
            email_domains=list(data.get("email_domains") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "gid": self.gid,
            "name": self.name,
            "is_organization": self.is_organization,
            "email_domains": self.email_domains or None,
        })


@dataclass
class Project:
    gid: GID
    name: str
    archived: bool = False
    color: Optional[str] = None
    notes: Optional[str] = None
    workspace: Optional[AsanaResource] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            gid=GID(data["gid"]),
            name=data.get("name", ""),
            archived=bool(data.get("archived", False)),
            color=data.get("color") or None,
            notes=data.get("notes") or None,
            workspace=_ref(data.get("workspace")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "gid": self.gid,
            "name": self.name,
            "archived": self.archived,
            "color": self.color,
            "notes": self.notes,
            "workspace": _ref_dict(self.workspace),
        })


@dataclass
class Task:
    gid: GID
    name: str
    notes: Optional[str] = None
    completed: bool = False
    completed_at: Optional[str] = None
    due_on: Optional[str] = None
    assignee: Optional[AsanaResource] = None
    projects: List[AsanaResource] = field(default_factory=list)
    parent: Optional[AsanaResource] = None
    tags: List[AsanaResource] = field(default_factory=list)
    # None when the response did not include dependency data
    dependencies: Optional[List["Task"]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            gid=GID(data["gid"]),
            name=data.get("name", ""),
            notes=data.get("notes") or None,
            completed=bool(data.get("completed", False)),
            completed_at=data.get("completed_at") or None,
            due_on=data.get("due_on") or None,
            assignee=_ref(data.get("assignee")),
            projects=_refs(data.get("projects")),
            parent=_ref(data.get("parent")),
            tags=_refs(data.get("tags")),
            dependencies=_tasks(data.get("dependencies")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "gid": self.gid,
            "name": self.name,
            "notes": self.notes,
            "completed": self.completed,
            "completed_at": self.completed_at,
            "due_on": self.due_on,
            "assignee": _ref_dict(self.assignee),
            "projects": _refs_dict(self.projects),
            "parent": _ref_dict(self.parent),
            "tags": _refs_dict(self.tags),
            "dependencies": None if self.dependencies is None else [dep.to_dict() for dep in self.dependencies],
        })


@dataclass
class Story:
    """A task activity entry; comments are stories of type ``comment``."""
    gid: GID
    created_at: str = ""
    type: str = ""
    text: Optional[str] = None
    created_by: Optional[AsanaResource] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Story":
        return cls(
            gid=GID(data["gid"]),
            created_at=data.get("created_at", ""),
            type=data.get("type", ""),
            text=data.get("text") or None,
            created_by=_ref(data.get("created_by")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "gid": self.gid,
            "created_at": self.created_at,
            "type": self.type,
            "text": self.text,
            "created_by": _ref_dict(self.created_by),
        })


@dataclass
class Tag:
    gid: GID
    name: str
    color: Optional[str] = None
    workspace: Optional[AsanaResource] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        return cls(
            gid=GID(data["gid"]),
            name=data.get("name", ""),
            color=data.get("color") or None,
            workspace=_ref(data.get("workspace")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "gid": self.gid,
            "name": self.name,
            "color": self.color,
            "workspace": _ref_dict(self.workspace),
        })


@dataclass
class Team:
    gid: GID
    name: str
    resource_type: str = "team"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(
            gid=GID(data["gid"]),
            name=data.get("name", ""),
            resource_type=data.get("resource_type", "team"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"gid": self.gid, "name": self.name, "resource_type": self.resource_type}


@dataclass
class Section:
    gid: GID
    name: str
    project: Optional[AsanaResource] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        return cls(
            gid=GID(data["gid"]),
            name=data.get("name", ""),
            project=_ref(data.get("project")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "gid": self.gid,
            "name": self.name,
            "project": _ref_dict(self.project),
        })


# --- Request payloads ---

@dataclass
class TaskCreateRequest:
    name: str
    notes: Optional[str] = None
    assignee: Optional[str] = None
    due_on: Optional[str] = None
    projects: List[str] = field(default_factory=list)
    parent: Optional[str] = None
    workspace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "name": self.name,
            "notes": self.notes,
            "assignee": self.assignee,
            "due_on": self.due_on,
            "projects": self.projects or None,
            "parent": self.parent,
            "workspace": self.workspace,
        })


@dataclass
class TaskUpdateRequest:
    """Partial update; only fields that are set are sent."""
    name: Optional[str] = None
    notes: Optional[str] = None
    assignee: Optional[str] = None
    due_on: Optional[str] = None
    completed: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "name": self.name,
            "notes": self.notes,
            "assignee": self.assignee,
            "due_on": self.due_on,
            "completed": self.completed,
        })

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class ProjectCreateRequest:
    name: str
    workspace: Optional[str] = None
    team: Optional[str] = None
    notes: Optional[str] = None
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({
            "name": self.name,
            "workspace": self.workspace,
            "team": self.team,
            "notes": self.notes,
            "color": self.color,
        })
