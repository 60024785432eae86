import asyncio
import random

from monitoring import PeriodicTask, PlatformMonitor


class TestPlatformMonitor:

    def test_sample_ranges(self):
        monitor = PlatformMonitor(random.Random(1))
        for _ in range(50):
            stats = monitor.sample()
            assert 10 <= stats.online_users <= 39
            assert 20 <= stats.server_load <= 79
            assert 5 <= stats.daily_orders <= 19
            assert 60 <= stats.storage_used <= 89

    def test_current_reuses_latest_sample(self):
        monitor = PlatformMonitor(random.Random(2))
        first = monitor.current()
        assert monitor.current() is first
        assert monitor.sample() is monitor.current()

    def test_recent_logs_newest_first(self):
        logs = PlatformMonitor(random.Random(3)).recent_logs()
        assert len(logs) == 8
        assert [entry.time for entry in logs] == sorted((entry.time for entry in logs), reverse=True)
        assert logs[0].time == "10:30"


class TestPeriodicTask:

    def test_runs_until_stopped(self):
        calls = []

        async def scenario():
            task = PeriodicTask(0.01, lambda: calls.append(1), name="test-task")
            task.start()
            assert task.running
            await asyncio.sleep(0.1)
            await task.stop()
            return task

        task = asyncio.run(scenario())
        assert not task.running
        assert task.runs == len(calls) >= 1

    def test_failing_tick_does_not_stop_the_task(self):
        def boom():
            raise RuntimeError("tick failed")

        async def scenario():
            task = PeriodicTask(0.01, boom)
            task.start()
            await asyncio.sleep(0.08)
            still_running = task.running
            await task.stop()
            return task, still_running

        task, still_running = asyncio.run(scenario())
        assert still_running
        assert task.runs >= 2

    def test_stop_without_start(self):
        asyncio.run(PeriodicTask(1, lambda: None).stop())
