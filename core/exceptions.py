"""Typed exceptions for task operations."""


class TaskNotFoundError(ValueError):
    """
    Task does not exist or belongs to another user.

    The two cases are indistinguishable to callers: another user's task id
    never confirms that the task exists.
    """
