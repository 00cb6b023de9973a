import pytest
from unittest.mock import MagicMock

from asanacli.core.command_handler import CommandHandler
from asanacli.domain.errors import AuthError, GeneralError, InvalidArgsError, NotFoundError
from asanacli.domain.interfaces.api_client import ProjectManagementClient
from asanacli.domain.interfaces.output import OutputFormatter
from asanacli.domain.models.common import ListResponse
from asanacli.domain.models.resources import (
    ProjectCreateRequest, Task, TaskCreateRequest, TaskUpdateRequest, User,
)
from asanacli.infrastructure.config.settings import Settings


@pytest.fixture
def mock_client():
    return MagicMock(spec=ProjectManagementClient)


@pytest.fixture
def mock_output():
    return MagicMock(spec=OutputFormatter)


@pytest.fixture
def client_factory(mock_client):
    return MagicMock(return_value=mock_client)


@pytest.fixture
def make_handler(client_factory, mock_output):
    """Builds a CommandHandler for the given Settings overrides."""
    def _make(**overrides):
        values = {"access_token": "token-123", "workspace": "ws-1"}
        values.update(overrides)
        return CommandHandler(settings=Settings(**values), client_factory=client_factory, output=mock_output)
    return _make


@pytest.mark.asyncio
async def test_handle_me(make_handler, mock_client, mock_output, client_factory):
    user = User(gid="1", name="Ada")
    mock_client.get_me.return_value = user

    await make_handler().handle_me()

    client_factory.assert_called_once()
    assert client_factory.call_args.args[0].access_token == "token-123"
    mock_output.print.assert_called_once_with(user)
    mock_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_missing_token_is_auth_error(make_handler, client_factory):
    handler = make_handler(access_token="")
    with pytest.raises(AuthError) as exc_info:
        await handler.handle_me()

    assert exc_info.value.message == "ASANA_ACCESS_TOKEN environment variable not set"
    assert exc_info.value.exit_code == 3
    client_factory.assert_not_called()


@pytest.mark.asyncio
async def test_missing_workspace_is_invalid_args(make_handler, client_factory):
    with pytest.raises(InvalidArgsError):
        await make_handler(workspace="").handle_project_list()
    client_factory.assert_not_called()


@pytest.mark.asyncio
async def test_client_is_closed_when_call_fails(make_handler, mock_client, mock_output):
    mock_client.get_task.side_effect = NotFoundError("task")

    with pytest.raises(NotFoundError):
        await make_handler().handle_task_get("404")

    mock_client.aclose.assert_awaited_once()
    mock_output.print.assert_not_called()


@pytest.mark.asyncio
async def test_task_list_by_workspace_search(make_handler, mock_client, mock_output):
    response = ListResponse(data=[Task(gid="1", name="A")])
    mock_client.list_tasks.return_value = response

    await make_handler().handle_task_list(assignee="me", completed=False)

    mock_client.list_tasks.assert_awaited_once_with(
        project=None, workspace="ws-1", tag=None, assignee="me", completed=False, limit=0, offset=None,
    )
    mock_output.print.assert_called_once_with(response)


@pytest.mark.asyncio
async def test_task_list_by_project_needs_no_workspace(make_handler, mock_client):
    mock_client.list_tasks.return_value = ListResponse()
    await make_handler(workspace="").handle_task_list(project="p-1")
    assert mock_client.list_tasks.call_args.kwargs["workspace"] is None


@pytest.mark.asyncio
async def test_task_create_defaults_to_workspace(make_handler, mock_client):
    mock_client.create_task.return_value = Task(gid="9", name="New")

    await make_handler().handle_task_create("New", due_on="2024-06-01")

    mock_client.create_task.assert_awaited_once_with(
        TaskCreateRequest(name="New", due_on="2024-06-01", workspace="ws-1")
    )


@pytest.mark.asyncio
async def test_task_create_in_project(make_handler, mock_client):
    mock_client.create_task.return_value = Task(gid="9", name="New")
    await make_handler(workspace="").handle_task_create("New", projects=["p-1"])
    request = mock_client.create_task.call_args.args[0]
    assert request.projects == ["p-1"]
    assert request.workspace is None


@pytest.mark.asyncio
async def test_dry_run_create_skips_client(make_handler, mock_output, client_factory):
    await make_handler(dry_run=True).handle_task_create("Preview", notes="n")

    client_factory.assert_not_called()
    mock_output.print.assert_called_once_with({
        "dry_run": True,
        "request": {"name": "Preview", "notes": "n", "workspace": "ws-1"},
    })


@pytest.mark.asyncio
async def test_dry_run_still_requires_auth(make_handler):
    with pytest.raises(AuthError):
        await make_handler(dry_run=True, access_token="").handle_task_delete("1")


@pytest.mark.asyncio
@pytest.mark.parametrize("method, args, expected", [
    ("handle_task_complete", ("1",), {"dry_run": True, "gid": "1", "action": "complete"}),
    ("handle_task_delete", ("1",), {"dry_run": True, "gid": "1", "action": "delete"}),
    ("handle_comment_add", ("1", "hi"), {"dry_run": True, "task_gid": "1", "text": "hi"}),
    ("handle_section_add_task", ("s", "t"), {"dry_run": True, "section": "s", "task": "t"}),
    ("handle_subtask_add", ("p", "Child"), {"dry_run": True, "parent": "p", "name": "Child"}),
    ("handle_dep_add", ("1", "2"), {"dry_run": True, "task_gid": "1", "depends_on": "2"}),
    ("handle_dep_rm", ("1", "2"), {"dry_run": True, "task_gid": "1", "removed_from": "2"}),
    ("handle_blocked", ("p",), {"dry_run": True, "project": "p", "limit": 20, "action": "blocked"}),
    ("handle_ready", ("p", "me", 5), {"dry_run": True, "project": "p", "assignee": "me", "limit": 5, "action": "ready"}),
])
async def test_dry_run_mutations(make_handler, mock_output, client_factory, method, args, expected):
    await getattr(make_handler(dry_run=True), method)(*args)

    client_factory.assert_not_called()
    mock_output.print.assert_called_once_with(expected)


@pytest.mark.asyncio
async def test_task_complete(make_handler, mock_client):
    mock_client.update_task.return_value = Task(gid="1", name="Done", completed=True)
    await make_handler().handle_task_complete("1")
    mock_client.update_task.assert_awaited_once_with("1", TaskUpdateRequest(completed=True))


@pytest.mark.asyncio
async def test_task_update_without_fields(make_handler, client_factory):
    with pytest.raises(InvalidArgsError, match="no fields to update"):
        await make_handler().handle_task_update("1")
    client_factory.assert_not_called()


@pytest.mark.asyncio
async def test_task_delete_prints_confirmation(make_handler, mock_client, mock_output):
    mock_client.delete_task.return_value = None
    await make_handler().handle_task_delete("1")

    mock_client.delete_task.assert_awaited_once_with("1")
    mock_output.print.assert_called_once_with({"deleted": True, "gid": "1"})


@pytest.mark.asyncio
async def test_project_create_prefers_team(make_handler, mock_client):
    mock_client.create_project.return_value = MagicMock()
    await make_handler(team="team-1").handle_project_create("Roadmap")
    mock_client.create_project.assert_awaited_once_with(ProjectCreateRequest(name="Roadmap", team="team-1"))


@pytest.mark.asyncio
async def test_me_teams_uses_workspace_as_organization(make_handler, mock_client):
    mock_client.list_user_teams.return_value = ListResponse()
    await make_handler().handle_me_teams(limit=5)
    mock_client.list_user_teams.assert_awaited_once_with("ws-1", "me", limit=5)


@pytest.mark.asyncio
async def test_search_excludes_completed_by_default(make_handler, mock_client, mock_output):
    response = ListResponse(data=[Task(gid="1", name="Fix bug")])
    mock_client.search_tasks.return_value = response

    await make_handler().handle_search("bug", project="p")

    mock_client.search_tasks.assert_awaited_once_with(
        workspace="ws-1", text="bug", project="p", assignee=None, completed=False, limit=20, offset=None,
    )
    mock_output.print.assert_called_once_with(response)


@pytest.mark.asyncio
async def test_search_including_completed(make_handler, mock_client):
    mock_client.search_tasks.return_value = ListResponse()
    await make_handler().handle_search("bug", include_completed=True, limit=5)
    assert mock_client.search_tasks.call_args.kwargs["completed"] is None


@pytest.mark.asyncio
async def test_search_dry_run_prints_options(make_handler, mock_output, client_factory):
    await make_handler(dry_run=True).handle_search("bug")

    client_factory.assert_not_called()
    mock_output.print.assert_called_once_with({
        "dry_run": True,
        "search_options": {"workspace": "ws-1", "text": "bug", "completed": False, "limit": 20},
    })


@pytest.mark.asyncio
async def test_search_requires_workspace(make_handler, client_factory):
    with pytest.raises(InvalidArgsError):
        await make_handler(workspace="").handle_search("bug")
    client_factory.assert_not_called()


@pytest.mark.asyncio
async def test_subtask_add_requires_name(make_handler, client_factory):
    with pytest.raises(InvalidArgsError, match="subtask name is required"):
        await make_handler().handle_subtask_add("p", "")
    client_factory.assert_not_called()


@pytest.mark.asyncio
async def test_dep_add_and_rm_print_confirmation(make_handler, mock_client, mock_output):
    handler = make_handler()
    await handler.handle_dep_add("1", "2")
    await handler.handle_dep_rm("1", "2")

    mock_client.add_dependency.assert_awaited_once_with("1", "2")
    mock_client.remove_dependency.assert_awaited_once_with("1", "2")
    assert [c.args[0] for c in mock_output.print.call_args_list] == [
        {"task_gid": "1", "depends_on": "2", "created": True},
        {"task_gid": "1", "removed_from": "2", "removed": True},
    ]


@pytest.mark.asyncio
async def test_dep_list_shows_both_directions(make_handler, mock_client, mock_output, client_factory):
    upstream = Task(gid="2", name="Design")
    downstream = Task(gid="3", name="Ship")
    mock_client.list_dependencies.return_value = ListResponse(data=[upstream])
    mock_client.list_dependents.return_value = ListResponse(data=[downstream])

    await make_handler().handle_dep_list("1")

    client_factory.assert_called_once()
    mock_output.print.assert_called_once_with({"task_gid": "1", "depends_on": [upstream], "dependents": [downstream]})
    mock_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["handle_blocked", "handle_ready"])
async def test_dependency_views_require_project(make_handler, client_factory, method):
    with pytest.raises(InvalidArgsError, match="no project specified"):
        await getattr(make_handler(), method)()
    client_factory.assert_not_called()


@pytest.mark.asyncio
async def test_blocked_keeps_tasks_with_open_dependencies(make_handler, mock_client, mock_output):
    waiting = Task(gid="1", name="Waiting")
    unblocked = Task(gid="2", name="Unblocked")
    free = Task(gid="3", name="Free")
    mock_client.list_tasks.return_value = ListResponse(data=[waiting, unblocked, free])
    dependencies = {
        "1": [Task(gid="10", name="Open", completed=False), Task(gid="11", name="Done", completed=True)],
        "2": [Task(gid="11", name="Done", completed=True)],
        "3": [],
    }
    mock_client.list_dependencies.side_effect = lambda gid, opt_fields=None: ListResponse(data=dependencies[gid])

    await make_handler().handle_blocked(project="p", assignee="me", limit=10)

    mock_client.list_tasks.assert_awaited_once_with(project="p", assignee="me", completed=False, limit=10)
    assert mock_client.list_dependencies.await_count == 3
    assert mock_client.list_dependencies.call_args.kwargs["opt_fields"] == ["name", "completed"]
    mock_output.print.assert_called_once_with({"data": [waiting]})


@pytest.mark.asyncio
async def test_ready_keeps_tasks_with_all_dependencies_done(make_handler, mock_client, mock_output):
    ready = Task(gid="1", name="Ready", dependencies=[Task(gid="10", name="Done", completed=True)])
    no_deps = Task(gid="2", name="No deps", dependencies=[])
    waiting = Task(gid="3", name="Waiting", dependencies=[Task(gid="11", name="Open", completed=False)])
    mock_client.list_tasks.return_value = ListResponse(data=[ready, no_deps, waiting])

    await make_handler().handle_ready(project="p")

    mock_client.list_tasks.assert_awaited_once_with(
        project="p", assignee=None, completed=False, limit=20,
        opt_fields=["name", "completed", "dependencies", "dependencies.completed"],
    )
    mock_output.print.assert_called_once_with({"data": [ready, no_deps]})


@pytest.mark.asyncio
async def test_ready_rejects_tasks_without_dependency_data(make_handler, mock_client, mock_output):
    mock_client.list_tasks.return_value = ListResponse(data=[Task(gid="1", name="Bare")])

    with pytest.raises(GeneralError, match="task 1 missing dependency data"):
        await make_handler().handle_ready(project="p")

    mock_output.print.assert_not_called()
    mock_client.aclose.assert_awaited_once()
