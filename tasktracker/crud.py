"""Store operations for users and tasks.

Every task query is filtered by owner id, so another user's task is
indistinguishable from a missing one.
"""

import logging
import math
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .auth import get_password_hash, verify_password
from .errors import AuthError, ConflictError, NotFoundError, ServerError, ValidationError

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "createdAt": models.Task.created_at,
    "updatedAt": models.Task.updated_at,
    "title": models.Task.title,
    "priority": models.Task.priority,
    "completed": models.Task.completed,
    "category": models.Task.category,
    "dueDate": models.Task.due_date,
    "completedAt": models.Task.completed_at,
}

# OFFSET and LIMIT are bound as signed 64-bit integers.
MAX_SQL_INTEGER = 2**63 - 1


@contextmanager
def _store_errors(db: Session, message: str):
    try:
        yield
    except SQLAlchemyError:
        db.rollback()
        logger.exception(message)
        raise ServerError(message)


# ============== USERS ==============

def create_user(db: Session, user_in: schemas.UserCreate) -> models.User:
    with _store_errors(db, "Server error during registration"):
        existing = db.query(models.User).filter(
            or_(models.User.email == user_in.email, models.User.username == user_in.username)
        ).first()
    if existing is not None:
        field = "email" if existing.email == user_in.email else "username"
        raise ConflictError(f"User with this {field} already exists")

    user = models.User(
        username=user_in.username,
        email=user_in.email,
        hashed_password=get_password_hash(user_in.password),
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same name/email.
        db.rollback()
        raise ConflictError("User with this email or username already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Server error during registration")
        raise ServerError("Server error during registration")
    db.refresh(user)
    logger.info("Registered user id=%s username=%s", user.id, user.username)
    return user


def authenticate_user(db: Session, email: str, password: str) -> models.User:
    with _store_errors(db, "Server error during login"):
        user = db.query(models.User).filter(models.User.email == email).first()
    # Same error for unknown email and wrong password.
    if user is None or not verify_password(password, user.hashed_password):
        logger.info("Failed login attempt")
        raise AuthError("Invalid email or password")
    return user


# ============== TASKS ==============

def parse_task_id(raw: str) -> str:
    try:
        return uuid.UUID(raw).hex
    except (TypeError, ValueError):
        raise ValidationError("Invalid task ID")


def apply_completion(task: models.Task, completed: bool, now: Optional[datetime] = None) -> None:
    """Set ``completed`` and keep ``completed_at`` consistent with it."""
    completed = bool(completed)
    if completed and not task.completed:
        task.completed_at = now or models.utcnow()
    elif not completed:
        task.completed_at = None
    elif task.completed_at is None:
        task.completed_at = now or models.utcnow()
    task.completed = completed


def _owned(db: Session, owner_id: str):
    return db.query(models.Task).filter(models.Task.owner_id == owner_id)


def get_task(db: Session, owner_id: str, task_id: str) -> models.Task:
    task_id = parse_task_id(task_id)
    with _store_errors(db, "Server error fetching task"):
        task = _owned(db, owner_id).filter(models.Task.id == task_id).first()
    if task is None:
        raise NotFoundError("Task not found")
    return task


def list_tasks(
    db: Session,
    owner_id: str,
    *,
    page: int = 1,
    limit: int = 10,
    completed: Optional[bool] = None,
    priority: Optional[schemas.Priority] = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> Tuple[List[models.Task], schemas.Pagination]:
    column = SORT_FIELDS.get(sort_by)
    if column is None:
        raise ValidationError(
            "Invalid sort field",
            errors=[f"sortBy must be one of: {', '.join(SORT_FIELDS)}"],
        )

    query = _owned(db, owner_id)
    if completed is not None:
        query = query.filter(models.Task.completed == completed)
    if priority is not None:
        query = query.filter(models.Task.priority == schemas.Priority(priority).value)

    order = column.desc() if sort_order == "desc" else column.asc()
    skip = (page - 1) * limit

    if skip > MAX_SQL_INTEGER or limit > MAX_SQL_INTEGER:
        raise ValidationError("Invalid pagination parameters")

    with _store_errors(db, "Server error fetching tasks"):
        total = query.count()
        tasks = query.order_by(order, models.Task.id.asc()).offset(skip).limit(limit).all()

    pagination = schemas.Pagination(
        current=page,
        pages=math.ceil(total / limit),
        total=total,
        has_next=skip + len(tasks) < total,
        has_prev=page > 1,
    )
    return tasks, pagination


def create_task(db: Session, owner_id: str, task_in: schemas.TaskCreate) -> models.Task:
    task = models.Task(
        title=task_in.title,
        description=task_in.description,
        priority=task_in.priority.value,
        category=task_in.category,
        due_date=task_in.due_date,
        owner_id=owner_id,
    )
    apply_completion(task, False)
    with _store_errors(db, "Server error creating task"):
        db.add(task)
        db.commit()
        db.refresh(task)
    logger.debug("Task created id=%s owner=%s", task.id, owner_id)
    return task


def update_task(
    db: Session, owner_id: str, task_id: str, task_in: schemas.TaskUpdate
) -> models.Task:
    fields = task_in.model_dump(exclude_unset=True)
    if "title" in fields and not fields["title"]:
        raise ValidationError("Task title cannot be empty")

    task = get_task(db, owner_id, task_id)

    for field, value in fields.items():
        if field == "completed":
            if value is not None:
                apply_completion(task, value)
        elif field == "description":
            task.description = value or ""
        elif field == "category":
            task.category = value or "general"
        elif field == "due_date":
            task.due_date = value
        elif field == "priority":
            if value is not None:
                task.priority = schemas.Priority(value).value
        elif value is not None:
            setattr(task, field, value)

    with _store_errors(db, "Server error updating task"):
        db.commit()
        db.refresh(task)
    return task


def toggle_task(db: Session, owner_id: str, task_id: str) -> models.Task:
    task = get_task(db, owner_id, task_id)
    apply_completion(task, not task.completed)
    with _store_errors(db, "Server error updating task"):
        db.commit()
        db.refresh(task)
    return task


def delete_task(db: Session, owner_id: str, task_id: str) -> None:
    task = get_task(db, owner_id, task_id)
    with _store_errors(db, "Server error deleting task"):
        db.delete(task)
        db.commit()
    logger.debug("Task deleted id=%s owner=%s", task_id, owner_id)


def task_stats(db: Session, owner_id: str) -> schemas.TaskStats:
    with _store_errors(db, "Server error fetching task statistics"):
        rows = db.query(
            models.Task.completed, models.Task.priority, models.Task.due_date
        ).filter(models.Task.owner_id == owner_id).all()

    now = models.utcnow()
    stats = schemas.TaskStats()
    for completed, priority, due_date in rows:
        stats.total += 1
        if completed:
            stats.completed += 1
        else:
            stats.pending += 1
            if due_date is not None and now > models.as_utc(due_date):
                stats.overdue += 1
        if priority == schemas.Priority.high.value:
            stats.high_priority += 1
    return stats
