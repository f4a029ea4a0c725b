from datetime import date

import pytest

from tasktracker import services
from tasktracker.errors import AuthError, NotFoundError, OwnershipError, ValidationError
from tasktracker.models import Task, TaskState
from tasktracker.schemas import TaskRequest, parse_due_date


def _request(**overrides):
    data = {"name": "write tests", "description": "unit", "state": 1, "dueDate": "2030-05-01"}
    data.update(overrides)
    return TaskRequest.model_validate(data)


@pytest.fixture()
def owners(make_user):
    return make_user("owner_one"), make_user("owner_two")


# -----------------------------
# Валидация
# -----------------------------
def test_empty_name_is_reported():
    with pytest.raises(ValidationError) as exc_info:
        services.validate_task_request(_request(name=""))
    assert exc_info.value.reasons == ["'Name' parameter is Null or Empty."]


def test_undefined_state_is_reported():
    with pytest.raises(ValidationError) as exc_info:
        services.validate_task_request(_request(state=9))
    assert exc_info.value.reasons == ["'State' parameter is not valid."]


def test_all_violations_are_reported_together():
    with pytest.raises(ValidationError) as exc_info:
        services.validate_task_request(_request(name=None, state=-1, dueDate=None))
    reasons = exc_info.value.reasons
    assert len(reasons) == 3
    assert any("Name" in r for r in reasons)
    assert any("State" in r for r in reasons)
    assert any("DueDate" in r for r in reasons)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2030-05-01", date(2030, 5, 1)),
        ("2030-05-01T13:45:00", date(2030, 5, 1)),
        ("2030-05-01T13:45:00Z", date(2030, 5, 1)),
        ("not a date", None),
        ("2030-13-40", None),
        (20300501, None),
        (None, None),
        ("12345", None),
        ("1700000000", None),
    ],
)
def test_parse_due_date(value, expected):
    assert parse_due_date(value) == expected


# -----------------------------
# Создание и чтение
# -----------------------------
def test_create_then_get_round_trip(db_session, owners):
    owner_id, _ = owners
    created = services.create_task(db_session, owner_id, _request())
    fetched = services.get_task(db_session, owner_id, created.id)

    assert fetched.id == created.id
    assert fetched.owner_id == owner_id
    assert fetched.name == "write tests"
    assert fetched.description == "unit"
    assert fetched.state is TaskState.IN_PROGRESS
    assert fetched.due_date == date(2030, 5, 1)
    assert fetched.created_at is not None


def test_missing_description_defaults_to_empty(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request(description=None))
    assert task.description == ""


def test_get_foreign_task_is_not_found(db_session, owners):
    owner_id, other_id = owners
    task = services.create_task(db_session, owner_id, _request())
    with pytest.raises(NotFoundError):
        services.get_task(db_session, other_id, task.id)


def test_list_is_scoped_and_filtered(db_session, owners):
    owner_id, other_id = owners
    services.create_task(db_session, owner_id, _request(name="a", state=0))
    services.create_task(db_session, owner_id, _request(name="b", state=2))
    services.create_task(db_session, other_id, _request(name="c", state=2))

    assert [t.name for t in services.list_tasks(db_session, owner_id)] == ["a", "b"]
    assert [t.name for t in services.list_tasks(db_session, owner_id, 2)] == ["b"]
    assert services.list_tasks(db_session, owner_id, 3) == []


def test_list_rejects_undefined_state(db_session, owners):
    with pytest.raises(ValidationError):
        services.list_tasks(db_session, owners[0], 4)


def test_list_empty_can_be_reported_as_not_found(db_session, owners):
    with pytest.raises(NotFoundError):
        services.list_tasks(db_session, owners[0], empty_is_not_found=True)


# -----------------------------
# Полная замена
# -----------------------------
def test_replace_keeps_id_owner_and_created_at(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())
    created_at = task.created_at

    replaced = services.replace_task(
        db_session, owner_id, task.id, _request(name="renamed", description=None, state=3, dueDate="2031-01-01")
    )
    assert replaced.id == task.id
    assert replaced.owner_id == owner_id
    assert replaced.created_at == created_at
    assert replaced.name == "renamed"
    assert replaced.description == ""
    assert replaced.state is TaskState.ON_HOLD
    assert replaced.due_date == date(2031, 1, 1)


def test_replace_validates_before_lookup(db_session, owners):
    with pytest.raises(ValidationError):
        services.replace_task(db_session, owners[0], 12345, _request(name=""))


def test_replace_missing_task(db_session, owners):
    with pytest.raises(NotFoundError):
        services.replace_task(db_session, owners[0], 12345, _request())


# -----------------------------
# Частичное обновление
# -----------------------------
def test_empty_patch_changes_nothing(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())
    before = (task.name, task.description, task.state, task.due_date, task.created_at)

    result = services.patch_task(db_session, owner_id, task.id, {})

    assert isinstance(result, services.Updated)
    t = result.task
    assert (t.name, t.description, t.state, t.due_date, t.created_at) == before


def test_patch_empty_name_warns_once(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())

    result = services.patch_task(db_session, owner_id, task.id, {"name": ""})

    assert isinstance(result, services.UpdatedWithWarnings)
    assert result.task.name == "write tests"
    assert len(result.warnings) == 1
    assert "Name" in result.warnings[0]


def test_patch_applies_valid_fields_and_warns_on_invalid(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())

    result = services.patch_task(
        db_session, owner_id, task.id,
        {"name": "new name", "description": "", "state": 7, "dueDate": "tomorrow"},
    )

    assert isinstance(result, services.UpdatedWithWarnings)
    assert result.task.name == "new name"
    assert result.task.description == ""
    assert result.task.state is TaskState.IN_PROGRESS
    assert result.task.due_date == date(2030, 5, 1)
    assert result.warnings == [
        "'State' was not patched (invalid TaskState value).",
        "'DueDate' was not patched (invalid DateTime value).",
    ]


def test_patch_state_and_due_date(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())

    result = services.patch_task(db_session, owner_id, task.id, {"state": 2, "dueDate": "2032-02-02T08:00:00"})

    assert isinstance(result, services.Updated)
    assert result.task.state is TaskState.COMPLETED
    assert result.task.due_date == date(2032, 2, 2)


def test_patch_null_description_is_ignored(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())
    result = services.patch_task(db_session, owner_id, task.id, {"description": None})
    assert isinstance(result, services.Updated)
    assert result.task.description == "unit"


@pytest.mark.parametrize("state", [True, "1", 1.0, None])
def test_patch_state_must_be_an_integer(db_session, owners, state):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())
    result = services.patch_task(db_session, owner_id, task.id, {"state": state})
    assert isinstance(result, services.UpdatedWithWarnings)


# -----------------------------
# Права владельца
# -----------------------------
def test_authorize_owner():
    services.authorize_owner(1, 1)
    with pytest.raises(OwnershipError):
        services.authorize_owner(1, 2)
    assert issubclass(OwnershipError, AuthError)


@pytest.mark.parametrize(
    "operation",
    [
        lambda db, uid, tid: services.replace_task(db, uid, tid, _request(name="hijack")),
        lambda db, uid, tid: services.patch_task(db, uid, tid, {"name": "hijack"}),
        lambda db, uid, tid: services.delete_task(db, uid, tid),
    ],
)
def test_foreign_mutations_are_denied(db_session, owners, operation):
    owner_id, other_id = owners
    task = services.create_task(db_session, owner_id, _request())

    with pytest.raises(OwnershipError):
        operation(db_session, other_id, task.id)

    db_session.expire_all()
    stored = db_session.get(Task, task.id)
    assert stored is not None
    assert stored.name == "write tests"


def test_delete_removes_task(db_session, owners):
    owner_id, _ = owners
    task = services.create_task(db_session, owner_id, _request())
    services.delete_task(db_session, owner_id, task.id)
    with pytest.raises(NotFoundError):
        services.get_task(db_session, owner_id, task.id)
    with pytest.raises(NotFoundError):
        services.delete_task(db_session, owner_id, task.id)
