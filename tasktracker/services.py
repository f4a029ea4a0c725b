import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from .errors import NotFoundError, OwnershipError, ValidationError
from .models import Task, TaskState
from .schemas import TaskRequest, parse_due_date

logger = logging.getLogger(__name__)


# -----------------------------
# Результат частичного обновления
# -----------------------------
@dataclass
class Updated:
    task: Task


@dataclass
class UpdatedWithWarnings:
    task: Task
    warnings: List[str] = field(default_factory=list)


def _not_found(task_id: int) -> NotFoundError:
    return NotFoundError(f"Task (Id: {task_id}) not found.")


# -----------------------------
# Проверки
# -----------------------------
def authorize_owner(caller_id: int, owner_id: int) -> None:
    """Единственное место, где решается, может ли пользователь менять задачу."""
    if caller_id != owner_id:
        raise OwnershipError("You do not own this task.")


def validate_task_request(request: TaskRequest) -> None:
    reasons = []
    if not request.name:
        reasons.append("'Name' parameter is Null or Empty.")
    if not TaskState.is_defined(request.state):
        reasons.append("'State' parameter is not valid.")
    if request.due_date is None:
        reasons.append("'DueDate' parameter is missing.")
    if reasons:
        raise ValidationError("Invalid TaskItem object.", reasons)


def parse_state(value: Optional[int]) -> Optional[TaskState]:
    if value is None:
        return None
    if not TaskState.is_defined(value):
        raise ValidationError("Invalid TaskState.")
    return TaskState(value)


# -----------------------------
# Операции
# -----------------------------
def list_tasks(db: Session, owner_id: int, state: Optional[int] = None,
               empty_is_not_found: bool = False) -> List[Task]:
    state_filter = parse_state(state)
    query = db.query(Task).filter(Task.owner_id == owner_id)
    if state_filter is not None:
        query = query.filter(Task.state == state_filter)
    tasks = query.order_by(Task.id).all()
    if not tasks and empty_is_not_found:
        raise NotFoundError("No tasks found.")
    return tasks


def get_task(db: Session, owner_id: int, task_id: int) -> Task:
    # Чужая задача неотличима от несуществующей
    task = db.query(Task).filter(Task.id == task_id, Task.owner_id == owner_id).first()
    if task is None:
        raise _not_found(task_id)
    return task


def find_owned_task(db: Session, owner_id: int, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise _not_found(task_id)
    authorize_owner(owner_id, task.owner_id)
    return task


def create_task(db: Session, owner_id: int, request: TaskRequest) -> Task:
    validate_task_request(request)
    task = Task(
        owner_id=owner_id,
        name=request.name,
        description=request.description or "",
        state=TaskState(request.state),
        due_date=request.due_date,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("User %s created task %s", owner_id, task.id)
    return task


def replace_task(db: Session, owner_id: int, task_id: int, request: TaskRequest) -> Task:
    validate_task_request(request)
    task = find_owned_task(db, owner_id, task_id)
    task.name = request.name
    task.description = request.description or ""
    task.state = TaskState(request.state)
    task.due_date = request.due_date
    db.commit()
    db.refresh(task)
    return task


def patch_task(db: Session, owner_id: int, task_id: int, patch: Mapping[str, Any]):
    task = find_owned_task(db, owner_id, task_id)
    warnings = []

    if "name" in patch:
        value = patch["name"]
        if isinstance(value, str) and value:
            task.name = value
        else:
            warnings.append("'Name' was not patched (null or empty).")

    if "description" in patch:
        value = patch["description"]
        if isinstance(value, str):
            task.description = value
        elif value is not None:
            warnings.append("'Description' was not patched (not a string).")

    if "state" in patch:
        value = patch["state"]
        if TaskState.is_defined(value):
            task.state = TaskState(value)
        else:
            warnings.append("'State' was not patched (invalid TaskState value).")

    if "dueDate" in patch:
        value = parse_due_date(patch["dueDate"])
        if value is not None:
            task.due_date = value
        else:
            warnings.append("'DueDate' was not patched (invalid DateTime value).")

    db.commit()
    db.refresh(task)
    if warnings:
        return UpdatedWithWarnings(task, warnings)
    return Updated(task)


def delete_task(db: Session, owner_id: int, task_id: int) -> None:
    task = find_owned_task(db, owner_id, task_id)
    db.delete(task)
    db.commit()
    logger.info("User %s deleted task %s", owner_id, task_id)
