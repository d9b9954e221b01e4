"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, to_iso
from utils.user_context import (
    get_current_user_id,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)
from utils.hashing import one_way_hash
from utils.background import BackgroundTasks
