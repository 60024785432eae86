"""
Platform monitoring

Synthetic activity figures for the admin monitor panel. The numbers are
placeholders produced on a timer; nothing in the request workflow reads them.
"""
import asyncio
import logging
import random
from datetime import datetime
from typing import Callable, List, Optional

from schemas import PlatformStats, SystemLogEntry

logger = logging.getLogger(__name__)

LOG_TYPES = ["info", "success", "warning"]
LOG_ACTIONS = [
    "User login", "Order placed", "Product updated", "Weather alert sent",
    "User registered", "Database backup", "Security scan", "Price update",
]


class PlatformMonitor:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.latest: Optional[PlatformStats] = None

    def sample(self) -> PlatformStats:
        self.latest = PlatformStats(
            online_users=self.rng.randint(10, 39),
            server_load=self.rng.randint(20, 79),
            daily_orders=self.rng.randint(5, 19),
            storage_used=self.rng.randint(60, 89),
        )
        return self.latest

    def current(self) -> PlatformStats:
        return self.latest or self.sample()

    def recent_logs(self, count: int = 8) -> List[SystemLogEntry]:
        """Newest first; two entries per half-hour slot counting back from 10:00."""
        logs = []
        for i in range(count):
            hour = 10 - i // 2
            minute = "00" if i % 2 == 0 else "30"
            action = self.rng.choice(LOG_ACTIONS)
            outcome = "successfully" if self.rng.random() > 0.5 else "completed"
            logs.append(SystemLogEntry(
                time=f"{hour:02d}:{minute}",
                message=f"{action} {outcome}",
                type=self.rng.choice(LOG_TYPES),
            ))
        logs.sort(key=lambda entry: entry.time, reverse=True)
        return logs


class PeriodicTask:
    """Run `func` every `interval` seconds on the running event loop."""

    def __init__(self, interval: float, func: Callable[[], object], name: str = "periodic-task"):
        self.interval = interval
        self.func = func
        self.name = name
        self.runs = 0
        self.last_run: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)
        logger.info(f"Started {self.name} every {self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Stopped {self.name} after {self.runs} runs")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.func()
            except Exception:
                logger.exception(f"{self.name} failed")
            self.runs += 1
            self.last_run = datetime.now()
