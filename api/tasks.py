"""Task CRUD routes for the signed-in user."""

from fastapi import APIRouter, Depends, Request

from api.base import success_response
from auth.security_middleware import make_csrf_guard, require_auth
from core.models import TaskCreate, TaskUpdate
from core.services import TaskService


def create_task_router(task_service: TaskService, csrf_header_name: str = "X-CSRF-Token") -> APIRouter:
    """Every route requires a session; mutations also require the CSRF header."""
    router = APIRouter(
        prefix="/api/tasks",
        tags=["tasks"],
        dependencies=[Depends(require_auth), Depends(make_csrf_guard(csrf_header_name))],
    )

    @router.get("")
    async def list_tasks(request: Request):
        tasks = await task_service.list_active()
        return success_response(
            [t.model_dump(mode="json") for t in tasks], request
        ).model_dump(mode="json")

    @router.post("", status_code=201)
    async def create_task(request: Request, body: TaskCreate):
        task = await task_service.create(body)
        return success_response(task.model_dump(mode="json"), request).model_dump(mode="json")

    @router.put("/{task_id}")
    async def update_task(request: Request, task_id: str, body: TaskUpdate):
        task = await task_service.update(task_id, body)
        return success_response(task.model_dump(mode="json"), request).model_dump(mode="json")

    @router.delete("/{task_id}")
    async def archive_task(request: Request, task_id: str):
        """Soft delete."""
        task = await task_service.archive(task_id)
        return success_response(task.model_dump(mode="json"), request).model_dump(mode="json")

    return router
