from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import field_validator
from pydantic.alias_generators import to_camel

from .models import TaskState


def parse_due_date(value: Any) -> Optional[date]:
    """Дата или дата-время в ISO-формате; от дата-времени остаётся только дата.

    Числа и числовые строки (unix-время) датой не считаются.
    """
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Аутентификация
# -----------------------------
class Credentials(BaseModel):
    # Поля необязательны на уровне схемы: отсутствие проверяется в security,
    # чтобы вернуть 400 со списком причин
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterOut(CamelModel):
    message: str
    user_id: int


class TokenOut(BaseModel):
    token: str


# -----------------------------
# Задачи
# -----------------------------
class TaskRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    state: int = TaskState.NOT_STARTED
    due_date: Optional[date] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def _keep_date_part(cls, value):
        if value is None or isinstance(value, date):
            return value.date() if isinstance(value, datetime) else value
        parsed = parse_due_date(value)
        if parsed is None:
            raise ValueError("expected an ISO 8601 date or date-time")
        return parsed


class TaskOut(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    description: str
    state: TaskState
    created_at: datetime
    due_date: date


class PatchedTaskOut(BaseModel):
    task: TaskOut
    warnings: List[str]
