"""Domain services."""

from core.services.task_service import TaskService
