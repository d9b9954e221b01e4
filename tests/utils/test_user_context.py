"""Tests for utils/user_context.py - User identity propagation via contextvars."""

import asyncio

import pytest

from utils.user_context import (
    get_current_user_id,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)


class TestGetCurrentUserId:

    def test_raises_without_set(self):
        """Must raise RuntimeError when no context is set."""
        with pytest.raises(RuntimeError, match="No user context"):
            get_current_user_id()


class TestSetAndClear:

    def test_set_then_get(self):
        set_current_user_id("google-sub-1")
        assert get_current_user_id() == "google-sub-1"

    def test_clear_then_get_raises(self):
        set_current_user_id("google-sub-1")
        clear_current_user_id()
        with pytest.raises(RuntimeError):
            get_current_user_id()


class TestUserContextManager:

    def test_sets_and_clears(self):
        with user_context("google-sub-1"):
            assert get_current_user_id() == "google-sub-1"

        with pytest.raises(RuntimeError):
            get_current_user_id()

    def test_restores_previous(self):
        """Nested context managers restore the outer user."""
        with user_context("outer"):
            with user_context("inner"):
                assert get_current_user_id() == "inner"
            assert get_current_user_id() == "outer"

    def test_clears_on_exception(self):
        with pytest.raises(ZeroDivisionError):
            with user_context("google-sub-1"):
                1 / 0

        with pytest.raises(RuntimeError):
            get_current_user_id()


class TestTaskIsolation:

    async def test_concurrent_tasks_do_not_share_user(self):
        async def work(user_id: str) -> str:
            set_current_user_id(user_id)
            await asyncio.sleep(0)
            return get_current_user_id()

        results = await asyncio.gather(work("a"), work("b"), work("c"))

        assert results == ["a", "b", "c"]
