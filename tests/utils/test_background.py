"""Tests for utils/background.py - referenced fire-and-forget tasks."""

import asyncio

from utils.background import BackgroundTasks


class TestBackgroundTasks:

    async def test_spawned_task_runs_after_drain(self):
        tasks = BackgroundTasks()
        done = []

        async def job():
            await asyncio.sleep(0)
            done.append(True)

        tasks.spawn(job())
        assert len(tasks) == 1

        await tasks.drain()

        assert done == [True]
        assert len(tasks) == 0

    async def test_failures_do_not_break_drain(self):
        tasks = BackgroundTasks()

        async def boom():
            raise RuntimeError("background failure")

        tasks.spawn(boom())

        await tasks.drain()

        assert len(tasks) == 0

    async def test_drain_waits_for_tasks_spawned_while_draining(self):
        tasks = BackgroundTasks()
        done = []

        async def child():
            done.append("child")

        async def parent():
            tasks.spawn(child())
            done.append("parent")

        tasks.spawn(parent())
        await tasks.drain()

        assert done == ["parent", "child"]
