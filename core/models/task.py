"""Task domain models."""

from datetime import datetime

from pydantic import BaseModel, Field


class TaskCreate(BaseModel):
    """Data required to create a task."""

    title: str = Field(..., max_length=500)
    description: str | None = Field(None, max_length=10000)


class TaskUpdate(BaseModel):
    """Partial update. Only fields that are set are written."""

    title: str | None = Field(None, max_length=500)
    description: str | None = Field(None, max_length=10000)
    completed: bool | None = None
    priority: bool | None = None
    archived: bool | None = None
    order: float | None = None


class Task(BaseModel):
    """Full task entity as stored.

    Stored documents always carry every field; the defaults only cover
    documents written before a field existed.
    """

    task_id: str
    user_id: str
    title: str
    description: str = ""
    completed: bool = False
    priority: bool = False
    archived: bool = False
    order: float = 0
    created_at: datetime
    updated_at: datetime
