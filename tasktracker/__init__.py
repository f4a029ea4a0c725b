"""Сервис учёта личных задач с JWT-аутентификацией и ограничением частоты запросов."""

__version__ = "1.0.0"
