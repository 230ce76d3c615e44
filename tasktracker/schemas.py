from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import as_utc


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def _strip(value):
    return value.strip() if isinstance(value, str) else value


# Task schemas
class TaskBase(CamelModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    priority: Priority = Priority.medium
    category: str = Field("general", min_length=1, max_length=50)
    due_date: Optional[datetime] = None

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value):
        return as_utc(value)


class TaskCreate(TaskBase):
    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value):
        return _strip(value)

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value):
        return "" if value is None else _strip(value)

    @field_validator("priority", mode="before")
    @classmethod
    def default_priority(cls, value):
        return value or Priority.medium

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, value):
        return _strip(value) or "general"


class TaskUpdate(CamelModel):
    # Emptiness of an explicit title is checked by the update itself so the
    # error reads the same whether it was "" or null.
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    category: Optional[str] = Field(None, max_length=50)
    due_date: Optional[datetime] = None

    @field_validator("title", "description", "category", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, value):
        return as_utc(value)


class Task(TaskBase):
    id: str
    completed: bool = False
    completed_at: Optional[datetime] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime
    is_overdue: bool = False

    @field_validator("completed_at", "created_at", "updated_at")
    @classmethod
    def attach_utc(cls, value):
        return as_utc(value)


class Pagination(CamelModel):
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool


class TaskList(CamelModel):
    tasks: List[Task]
    pagination: Pagination


class TaskResponse(CamelModel):
    message: Optional[str] = None
    task: Task


class TaskStats(CamelModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    high_priority: int = 0
    overdue: int = 0


class StatsResponse(CamelModel):
    stats: TaskStats


class Message(CamelModel):
    message: str


# User schemas
class UserBase(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=1, max_length=50)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return _strip(value)


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


class UserLogin(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class User(UserBase):
    id: str
    role: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def attach_utc(cls, value):
        return as_utc(value)


class UserResponse(CamelModel):
    user: User


class AuthResponse(CamelModel):
    message: str
    token: str
    user: User


class Health(CamelModel):
    message: str
    timestamp: datetime
    environment: str
    uptime: float
