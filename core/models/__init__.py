"""Core domain models."""

from core.models.task import Task, TaskCreate, TaskUpdate

__all__ = [
    "Task", "TaskCreate", "TaskUpdate",
]
