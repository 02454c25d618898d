"""
SignMate Replay Scheduler - 时间源与调度器

回放器不直接依赖真实定时器：
- 时间源是一个返回毫秒数的可调用对象
- 调度器负责"在下一次 tick 时调用回调"，每次只调度一个

提供三种调度器：
- ThreadingTickScheduler: 基于 threading.Timer，适合独立脚本
- AsyncioTickScheduler: 基于事件循环的 call_later
- ManualTickScheduler: 手动驱动，用于测试或宿主自带循环
"""

import os
import time
import asyncio
import threading
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# 默认 tick 间隔（秒），约等于 60Hz 刷新率
DEFAULT_TICK_INTERVAL = float(os.environ.get("SIGNMATE_TICK_INTERVAL", 1.0 / 60))

TickCallback = Callable[[], None]


def monotonic_ms() -> float:
    """单调时钟（毫秒）"""
    return time.monotonic() * 1000.0


def wall_clock_ms() -> int:
    """墙钟时间（epoch 毫秒）"""
    return int(time.time() * 1000)


class ManualClock:
    """
    手动时钟

    ```python
    clock = ManualClock()
    clock.advance(100)
    assert clock() == 100
    ```
    """

    def __init__(self, start: float = 0):
        self._now = start

    def __call__(self) -> float:
        return self._now

    def now(self) -> float:
        return self._now

    def advance(self, ms: float) -> float:
        if ms < 0:
            raise ValueError(f"时钟不能倒退: {ms}")
        self._now += ms
        return self._now

    def set(self, value: float) -> None:
        self._now = value


class TickScheduler(ABC):
    """调度器接口"""

    @abstractmethod
    def schedule(self, callback: TickCallback) -> Any:
        """安排下一次 tick，返回可用于取消的句柄"""

    @abstractmethod
    def cancel(self, handle: Any) -> None:
        """取消尚未触发的 tick"""

    def close(self) -> None:
        """释放资源"""


class ThreadingTickScheduler(TickScheduler):
    """基于 threading.Timer 的调度器（回调在定时器线程执行）"""

    def __init__(self, interval: float = DEFAULT_TICK_INTERVAL):
        self.interval = interval
        self._timers: Dict[int, threading.Timer] = {}
        self._lock = threading.Lock()
        self._next_id = 0

    def schedule(self, callback: TickCallback) -> int:
        with self._lock:
            handle = self._next_id
            self._next_id += 1

            def run():
                with self._lock:
                    if self._timers.pop(handle, None) is None:
                        return
                callback()

            timer = threading.Timer(self.interval, run)
            timer.daemon = True
            self._timers[handle] = timer
        timer.start()
        return handle

    def cancel(self, handle: Any) -> None:
        with self._lock:
            timer = self._timers.pop(handle, None)
        if timer:
            timer.cancel()

    def close(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


class AsyncioTickScheduler(TickScheduler):
    """基于 asyncio 事件循环的调度器"""

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        interval: float = DEFAULT_TICK_INTERVAL,
    ):
        self.loop = loop
        self.interval = interval

    def schedule(self, callback: TickCallback) -> asyncio.TimerHandle:
        loop = self.loop or asyncio.get_running_loop()
        return loop.call_later(self.interval, callback)

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()


class ManualTickScheduler(TickScheduler):
    """
    手动调度器

    tick 只在调用 run_pending() 时执行，配合 ManualClock 可完全确定地驱动回放。
    """

    def __init__(self):
        self._pending: Dict[int, TickCallback] = {}
        self._next_id = 0

    @property
    def pending(self) -> int:
        """待执行的 tick 数量"""
        return len(self._pending)

    def schedule(self, callback: TickCallback) -> int:
        handle = self._next_id
        self._next_id += 1
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: Any) -> None:
        self._pending.pop(handle, None)

    def run_pending(self) -> int:
        """执行当前所有待执行的 tick（执行中新安排的留到下一轮）"""
        due = list(self._pending.items())
        self._pending.clear()
        for _, callback in due:
            callback()
        return len(due)

    def close(self) -> None:
        self._pending.clear()
