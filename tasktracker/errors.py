"""Доменные ошибки. В HTTP-ответы их переводят обработчики в ``main.create_app``."""

from typing import List, Optional


class TaskTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskTrackerError):
    """Некорректный ввод. ``reasons`` перечисляет все найденные нарушения."""

    status_code = 400

    def __init__(self, message: str, reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.reasons = list(reasons) if reasons else [message]


class ConflictError(TaskTrackerError):
    status_code = 409


class AuthError(TaskTrackerError):
    status_code = 401


class OwnershipError(AuthError):
    """Задача существует, но принадлежит другому пользователю."""


class NotFoundError(TaskTrackerError):
    status_code = 404
