"""
Task service for the per-user to-do list.

Tasks are scoped to the user in context. Deletion is a soft delete: the task
is archived and drops out of listings. New tasks take an order value above
every active task, leaving gaps so the client can reorder by assigning values
in between.
"""

import logging
from typing import Callable
from uuid import uuid4

from clients.document_store import DocumentNotFoundError, DocumentStore
from core.exceptions import TaskNotFoundError
from core.models import Task, TaskCreate, TaskUpdate
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

ORDER_GAP = 1000


class TaskService:
    """Service for task operations."""

    COLLECTION = "tasks"

    def __init__(self, store: DocumentStore, clock: Callable = now_utc):
        self.store = store
        self.clock = clock

    async def _active_tasks(self, user_id: str) -> list[Task]:
        docs = await self.store.query(self.COLLECTION, {"user_id": user_id})
        tasks = [Task.model_validate(data) for _, data in docs]
        return [t for t in tasks if not t.archived]

    async def list_active(self) -> list[Task]:
        """
        List the current user's non-archived tasks.

        Returns:
            Tasks ordered by `order` ascending
        """
        tasks = await self._active_tasks(get_current_user_id())
        return sorted(tasks, key=lambda t: t.order)

    async def get_by_id(self, task_id: str) -> Task | None:
        """
        Get one of the current user's tasks by ID.

        Returns:
            Task if found and owned by the current user (archived or not), None otherwise.
        """
        data = await self.store.get(self.COLLECTION, task_id)
        if data is None or data.get("user_id") != get_current_user_id():
            return None
        return Task.model_validate(data)

    async def create(self, data: TaskCreate) -> Task:
        """
        Create a new task at the end of the list.

        Raises:
            ValueError: Title is empty after trimming.
        """
        title = data.title.strip()
        if not title:
            raise ValueError("Title is required")

        user_id = get_current_user_id()
        highest = max((t.order for t in await self._active_tasks(user_id)), default=0)
        now = self.clock()

        task = Task(
            task_id=uuid4().hex,
            user_id=user_id,
            title=title,
            description=(data.description or "").strip(),
            order=max(highest, 0) + ORDER_GAP,
            created_at=now,
            updated_at=now,
        )
        await self.store.set(self.COLLECTION, task.task_id, task.model_dump(mode="json"))
        return task

    async def update(self, task_id: str, data: TaskUpdate) -> Task:
        """
        Apply a partial update.

        Raises:
            TaskNotFoundError: No such task for the current user.
            ValueError: Title set to an empty string.
        """
        task = await self.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task {task_id} not found")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "title" in changes:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                raise ValueError("Title cannot be empty")
        if "description" in changes:
            changes["description"] = changes["description"].strip()

        updated = task.model_copy(update={**changes, "updated_at": self.clock()})
        try:
            await self.store.update(
                self.COLLECTION,
                task_id,
                updated.model_dump(mode="json", include={*changes, "updated_at"}),
            )
        except DocumentNotFoundError as e:
            # Hard-deleted between the read and the write
            raise TaskNotFoundError(f"Task {task_id} not found") from e
        return updated

    async def archive(self, task_id: str) -> Task:
        """
        Soft delete: mark the task archived.

        Raises:
            TaskNotFoundError: No such task for the current user.
        """
        return await self.update(task_id, TaskUpdate(archived=True))

    async def delete_all_for_user(self, user_id: str) -> int:
        """Hard delete every task owned by user_id. Returns count deleted."""
        count = await self.store.delete_where(self.COLLECTION, {"user_id": user_id})
        logger.info(f"Deleted {count} tasks")
        return count
