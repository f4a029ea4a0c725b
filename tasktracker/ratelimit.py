"""
Ограничение частоты запросов по адресу клиента.

Фиксированное окно: в каждом окне ``window`` секунд сразу пропускается не более
``permit_limit`` запросов, ещё до ``queue_limit`` запросов ждут следующего окна
в порядке поступления, остальные отклоняются. Состояние хранится отдельно для
каждого ключа и защищено собственным ``asyncio.Lock``.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Optional

from starlette.responses import PlainTextResponse

logger = logging.getLogger(__name__)

GLOBAL_KEY = "global"
REJECTED_BODY = "Too many requests!"


@dataclass
class _Partition:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    window_start: Optional[float] = None
    used: int = 0
    queue: Deque[asyncio.Future] = field(default_factory=deque)
    replenisher: Optional[asyncio.Task] = None


class FixedWindowRateLimiter:
    def __init__(
        self,
        permit_limit: int,
        window: float,
        queue_limit: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if permit_limit < 1:
            raise ValueError("permit_limit must be positive")
        if window <= 0:
            raise ValueError("window must be positive")
        if queue_limit < 0:
            raise ValueError("queue_limit must not be negative")
        self.permit_limit = permit_limit
        self.window = window
        self.queue_limit = queue_limit
        self._clock = clock
        self._partitions: Dict[str, _Partition] = {}
        self._last_sweep = clock()

    def __contains__(self, key: str) -> bool:
        return key in self._partitions

    def _partition(self, key: str) -> _Partition:
        partition = self._partitions.get(key)
        if partition is None:
            partition = self._partitions[key] = _Partition()
        return partition

    def queued(self, key: str) -> int:
        partition = self._partitions.get(key)
        return len(partition.queue) if partition else 0

    async def acquire(self, key: str) -> bool:
        """Возвращает True, когда запрос допущен (возможно, после ожидания), и False при отказе."""
        self._evict_idle()
        while True:
            partition = self._partition(key)
            async with partition.lock:
                # Пока ждали блокировку, раздел мог быть удалён как простаивающий
                if self._partitions.get(key) is not partition:
                    continue
                self._advance(partition)
                if partition.used < self.permit_limit and not partition.queue:
                    partition.used += 1
                    return True
                if len(partition.queue) >= self.queue_limit:
                    return False
                waiter = asyncio.get_running_loop().create_future()
                partition.queue.append(waiter)
                self._schedule_replenish(partition)
            break

        try:
            await waiter
        except asyncio.CancelledError:
            # Клиент ушёл, пока ждал: освобождаем место в очереди или выданное разрешение
            if waiter in partition.queue:
                partition.queue.remove(waiter)
            elif waiter.done() and not waiter.cancelled():
                self._release(partition, waiter.result())
            raise
        return True

    def _release(self, partition: _Partition, window_start: float) -> None:
        # Разрешение из уже закончившегося окна возвращать некуда
        if window_start != partition.window_start:
            return
        partition.used -= 1
        self._grant(partition)

    def _advance(self, partition: _Partition) -> None:
        # Вызывается только под partition.lock
        now = self._clock()
        if partition.window_start is not None and now - partition.window_start < self.window:
            return
        partition.window_start = now
        partition.used = 0
        self._grant(partition)

    def _grant(self, partition: _Partition) -> None:
        while partition.queue and partition.used < self.permit_limit:
            waiter = partition.queue.popleft()
            if waiter.done():
                continue
            waiter.set_result(partition.window_start)
            partition.used += 1

    def _idle(self, partition: _Partition, now: float) -> bool:
        if partition.queue or partition.lock.locked():
            return False
        if partition.replenisher is not None and not partition.replenisher.done():
            return False
        return partition.window_start is None or now - partition.window_start >= self.window

    def _evict_idle(self) -> None:
        # Не чаще раза за окно: проход по всем ключам линейный
        now = self._clock()
        if now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        idle = [key for key, partition in self._partitions.items() if self._idle(partition, now)]
        for key in idle:
            del self._partitions[key]
        if idle:
            logger.debug("Evicted %d idle rate limit partitions", len(idle))

    def _schedule_replenish(self, partition: _Partition) -> None:
        if partition.replenisher is None or partition.replenisher.done():
            partition.replenisher = asyncio.create_task(self._replenish(partition))

    async def _replenish(self, partition: _Partition) -> None:
        while True:
            delay = partition.window_start + self.window - self._clock()
            if delay > 0:
                await asyncio.sleep(delay)
            async with partition.lock:
                self._advance(partition)
                if not partition.queue:
                    partition.replenisher = None
                    return

    async def close(self) -> None:
        """Останавливает фоновые задачи пополнения; вызывается при остановке приложения."""
        tasks = [p.replenisher for p in self._partitions.values() if p.replenisher is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for partition in self._partitions.values():
            partition.replenisher = None


def client_key(scope) -> str:
    client = scope.get("client")
    if client and client[0]:
        return client[0]
    return GLOBAL_KEY


class RateLimitMiddleware:
    """ASGI-middleware: отклонённые запросы не доходят ни до аутентификации, ни до БД."""

    def __init__(self, app, limiter: FixedWindowRateLimiter):
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        key = client_key(scope)
        if not await self.limiter.acquire(key):
            logger.warning("Rate limit exceeded for %s %s from %s", scope["method"], scope["path"], key)
            response = PlainTextResponse(REJECTED_BODY, status_code=429)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
