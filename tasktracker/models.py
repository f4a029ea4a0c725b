import enum
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .database import Base

USERNAME_MAX_LENGTH = 16


class TaskState(enum.IntEnum):
    NOT_STARTED = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    ON_HOLD = 3

    @classmethod
    def is_defined(cls, value) -> bool:
        # bool является подклассом int, но состоянием не считается
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return value in cls._value2member_map_


# -----------------------------
# Модели БД
# -----------------------------
class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(USERNAME_MAX_LENGTH), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    tasks = relationship("Task", back_populates="owner")

    def __repr__(self):
        return f"<User id={self.id} username={self.username!r}>"


class Task(Base):
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    # Храним имя состояния, а не его номер
    state = Column(
        Enum(TaskState, native_enum=False, length=16),
        nullable=False,
        index=True,
        default=TaskState.NOT_STARTED,
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    due_date = Column(Date, nullable=False)
    owner = relationship("User", back_populates="tasks")

    def __repr__(self):
        return f"<Task id={self.id} owner_id={self.owner_id} state={self.state}>"
