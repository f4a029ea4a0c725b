from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Response, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from . import config, security, services
from .database import get_db
from .schemas import Credentials, PatchedTaskOut, RegisterOut, TaskOut, TaskRequest, TokenOut

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_user_id(token: str = Depends(oauth2_scheme)) -> int:
    return security.authenticate(token)


# -----------------------------
# Эндпоинты аутентификации
# -----------------------------
auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/register", response_model=RegisterOut)
def register(credentials: Credentials, db: Session = Depends(get_db)):
    user_id = security.register_user(db, credentials.username, credentials.password)
    return RegisterOut(message="User registered successfully.", user_id=user_id)


@auth_router.post("/login", response_model=TokenOut)
def login(credentials: Credentials, db: Session = Depends(get_db)):
    return TokenOut(token=security.login_user(db, credentials.username, credentials.password))


# -----------------------------
# CRUD для задач
# -----------------------------
tasks_router = APIRouter(prefix="/tasks", tags=["tasks"])


@tasks_router.get("", response_model=List[TaskOut])
def read_tasks(
    state: Optional[int] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return services.list_tasks(db, user_id, state, empty_is_not_found=config.EMPTY_LIST_NOT_FOUND)


@tasks_router.get("/{task_id}", response_model=TaskOut)
def read_task(task_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return services.get_task(db, user_id, task_id)


@tasks_router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    request: TaskRequest,
    response: Response,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    task = services.create_task(db, user_id, request)
    response.headers["Location"] = f"/tasks/{task.id}"
    return task


@tasks_router.put("/{task_id}", response_model=TaskOut)
def replace_task(
    task_id: int,
    request: TaskRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return services.replace_task(db, user_id, task_id, request)


@tasks_router.patch("/{task_id}", response_model=None)
def patch_task(
    task_id: int,
    patch: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    result = services.patch_task(db, user_id, task_id, patch)
    task = TaskOut.model_validate(result.task)
    if isinstance(result, services.UpdatedWithWarnings):
        return PatchedTaskOut(task=task, warnings=result.warnings)
    return task


@tasks_router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: int, db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    services.delete_task(db, user_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
