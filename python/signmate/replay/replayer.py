"""
SignMate Replay Player - 会话回放器

基于虚拟时间的确定性回放：
- 每次 tick 按 (真实时间增量 × 速度) 推进虚拟时间
- 一次 tick 内派发所有到期事件，长时间挂起后也不会丢失或重复
- 可变速（0.25x - 4x）、任意跳转、按标记跳转
- 时间源和调度器均可注入，测试中可完全手动驱动
"""

import bisect
import functools
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from ..protocol.schema import ASLSign, TranscriptionSegment
from .message import (
    ErrorEvent,
    MarkerEvent,
    MarkerInfo,
    SessionRecording,
    SignEndEvent,
    SignStartEvent,
    TranscriptionEvent,
    TranslationEvent,
)
from .scheduler import ThreadingTickScheduler, TickScheduler, monotonic_ms

logger = logging.getLogger(__name__)


class PlayerState(str, Enum):
    """回放状态"""

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass
class ReplayerConfig:
    """回放器配置"""

    speed: float = 1.0  # 初始回放速度倍数
    min_speed: float = 0.25
    max_speed: float = 4.0


@dataclass
class PlaybackCallbacks:
    """
    回放回调集合

    回调异常不会被捕获，直接传播给调用方（通常是调度器）。
    """

    on_transcription: Optional[Callable[[TranscriptionSegment], None]] = None
    on_translation: Optional[Callable[[Sequence[ASLSign], str], None]] = None
    on_sign_start: Optional[Callable[[ASLSign, int], None]] = None
    on_sign_end: Optional[Callable[[ASLSign, int], None]] = None
    on_marker: Optional[Callable[[str, Optional[str]], None]] = None
    on_error: Optional[Callable[[str, str], None]] = None
    on_state_change: Optional[Callable[[PlayerState], None]] = None
    on_progress: Optional[Callable[[float, int, float], None]] = None


class SessionPlayer:
    """
    会话回放器

    使用示例：
    ```python
    from signmate.replay import SessionPlayer, PlaybackCallbacks, import_recording

    player = SessionPlayer()
    player.load(import_recording(text))
    player.set_callbacks(PlaybackCallbacks(
        on_transcription=lambda segment: print(segment.text),
        on_marker=lambda label, notes: print("marker", label),
    ))
    player.set_speed(2)
    player.play()
    ```

    测试中注入 ManualClock 和 ManualTickScheduler：
    ```python
    clock = ManualClock()
    scheduler = ManualTickScheduler()
    player = SessionPlayer(clock=clock, scheduler=scheduler)
    player.load(recording)
    player.play()
    clock.advance(100)
    scheduler.run_pending()
    ```
    """

    def __init__(
        self,
        config: Optional[ReplayerConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        scheduler: Optional[TickScheduler] = None,
    ):
        self.config = config or ReplayerConfig()
        self._clock = clock or monotonic_ms
        self._scheduler = scheduler or ThreadingTickScheduler()
        self._lock = threading.RLock()

        self._recording: Optional[SessionRecording] = None
        self._timestamps: List[int] = []
        self._callbacks = PlaybackCallbacks()

        self._state = PlayerState.IDLE
        self._current_time = 0.0
        self._cursor = 0
        self._speed = self._clamp_speed(self.config.speed)

        self._last_tick_time = 0.0
        self._pending_tick: Any = None
        # 每次安排 tick 时递增；已被取消或替换的 tick 触发时直接丢弃
        self._tick_token = 0
        # 跳转/停止/加载时递增，用于中断进行中的派发循环
        self._epoch = 0

    # ==================== 状态 ====================

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state == PlayerState.PLAYING

    def get_state(self) -> PlayerState:
        return self._state

    def get_current_time(self) -> float:
        return self._current_time

    def get_duration(self) -> int:
        if self._recording is None:
            return 0
        return self._recording.duration

    def get_progress(self) -> float:
        if self._recording is None:
            return 0.0
        duration = self.get_duration()
        if duration <= 0:
            return 1.0
        return min(self._current_time / duration, 1.0)

    def get_speed(self) -> float:
        return self._speed

    def get_recording(self) -> Optional[SessionRecording]:
        return self._recording

    def get_markers(self) -> List[MarkerInfo]:
        if self._recording is None:
            return []
        return list(self._recording.markers())

    # ==================== 加载与回调 ====================

    def load(self, recording: SessionRecording) -> None:
        """加载录制并重置到开头（不会自动播放）"""
        with self._lock:
            self._cancel_pending()
            self._recording = recording
            self._timestamps = [event.timestamp for event in recording.events]
            self._reset()
            self._state = PlayerState.IDLE

            logger.info(
                f"加载会话: {recording.metadata.id}, "
                f"事件数: {recording.event_count}, "
                f"时长: {recording.duration}ms"
            )
            self._emit_state()

    def set_callbacks(self, callbacks: PlaybackCallbacks) -> None:
        """替换回调集合（不影响回放位置）"""
        with self._lock:
            self._callbacks = callbacks or PlaybackCallbacks()

    # ==================== 播放控制 ====================

    def play(self) -> None:
        """开始/继续播放；已结束时从头开始"""
        with self._lock:
            if not self._require_recording("play"):
                return
            if self._state == PlayerState.PLAYING:
                return
            if self._state == PlayerState.ENDED:
                self._reset()

            self._state = PlayerState.PLAYING
            self._last_tick_time = self._clock()
            self._emit_state()
            if self._state == PlayerState.PLAYING:
                self._schedule_tick()

    def pause(self) -> None:
        """暂停播放"""
        with self._lock:
            if not self._require_recording("pause"):
                return
            if self._state != PlayerState.PLAYING:
                return
            self._cancel_pending()
            self._state = PlayerState.PAUSED
            self._emit_state()

    def stop(self) -> None:
        """停止播放并回到开头，同步取消待执行的 tick"""
        with self._lock:
            if not self._require_recording("stop"):
                return
            self._cancel_pending()
            self._reset()
            self._state = PlayerState.IDLE
            self._emit_state()

    def seek(self, time_ms: float) -> None:
        """
        跳转到指定时间

        跳转点及之前的事件视为已消费，不会补发。
        """
        with self._lock:
            if not self._require_recording("seek"):
                return
            duration = self.get_duration()
            target = max(0.0, min(float(time_ms), float(duration)))

            self._epoch += 1
            self._current_time = target
            self._cursor = bisect.bisect_right(self._timestamps, target)

            if self._state == PlayerState.ENDED and target < duration:
                self._state = PlayerState.PAUSED
                self._emit_state()

            logger.debug(f"跳转到 {target}ms, 事件索引: {self._cursor}")
            self._emit_progress()

    def seek_to_marker(self, label: str) -> bool:
        """跳转到第一个匹配的标记；找不到时返回 False 且不改变状态"""
        with self._lock:
            if self._recording is None:
                logger.warning("没有加载会话，无法跳转到标记")
                return False
            for event in self._recording.events:
                if isinstance(event, MarkerEvent) and event.data.label == label:
                    self.seek(event.timestamp)
                    return True
            return False

    def set_speed(self, multiplier: float) -> None:
        """设置回放速度（下一次 tick 生效）"""
        with self._lock:
            self._speed = self._clamp_speed(multiplier)

    # ==================== tick ====================

    def _tick(self, token: int) -> None:
        """推进虚拟时间并派发所有到期事件"""
        with self._lock:
            if token != self._tick_token:
                return
            self._pending_tick = None
            if self._state != PlayerState.PLAYING or self._recording is None:
                return

            now = self._clock()
            self._current_time += max(0.0, now - self._last_tick_time) * self._speed
            self._last_tick_time = now

            epoch = self._epoch
            events = self._recording.events
            while self._cursor < len(events):
                event = events[self._cursor]
                if event.timestamp > self._current_time:
                    break
                # 先推进游标，回调抛出异常时不会重复派发
                self._cursor += 1
                try:
                    self._dispatch(event)
                except Exception:
                    # 异常照常抛出，但回放继续
                    if self._state == PlayerState.PLAYING:
                        self._schedule_tick()
                    raise
                if self._epoch != epoch or self._state != PlayerState.PLAYING:
                    # 回调中发生了跳转/暂停/停止，剩余事件留给下一次 tick
                    if self._state == PlayerState.PLAYING:
                        self._schedule_tick()
                    return

            self._emit_progress()
            if self._state != PlayerState.PLAYING:
                return

            if self._current_time >= self.get_duration():
                self._state = PlayerState.ENDED
                logger.info(f"回放结束: {self._recording.metadata.id}")
                self._emit_state()
                return

            self._schedule_tick()

    def _dispatch(self, event) -> None:
        """将事件映射到对应回调；未知类型忽略"""
        callbacks = self._callbacks
        if isinstance(event, TranscriptionEvent):
            if callbacks.on_transcription:
                callbacks.on_transcription(event.data.segment)
        elif isinstance(event, TranslationEvent):
            if callbacks.on_translation:
                callbacks.on_translation(event.data.signs, event.data.source_text)
        elif isinstance(event, SignStartEvent):
            if callbacks.on_sign_start:
                callbacks.on_sign_start(event.data.sign, event.data.index)
        elif isinstance(event, SignEndEvent):
            if callbacks.on_sign_end:
                callbacks.on_sign_end(event.data.sign, event.data.index)
        elif isinstance(event, MarkerEvent):
            if callbacks.on_marker:
                callbacks.on_marker(event.data.label, event.data.notes)
        elif isinstance(event, ErrorEvent):
            if callbacks.on_error:
                callbacks.on_error(event.data.code, event.data.message)

    # ==================== 内部 ====================

    def _require_recording(self, action: str) -> bool:
        if self._recording is None:
            logger.warning(f"没有加载会话，忽略 {action}")
            return False
        return True

    def _schedule_tick(self) -> None:
        if self._pending_tick is None:
            self._tick_token += 1
            self._pending_tick = self._scheduler.schedule(
                functools.partial(self._tick, self._tick_token)
            )

    def _cancel_pending(self) -> None:
        self._tick_token += 1
        if self._pending_tick is not None:
            self._scheduler.cancel(self._pending_tick)
            self._pending_tick = None

    def _reset(self) -> None:
        self._epoch += 1
        self._current_time = 0.0
        self._cursor = 0

    def _clamp_speed(self, speed: float) -> float:
        return max(self.config.min_speed, min(float(speed), self.config.max_speed))

    def _emit_state(self) -> None:
        if self._callbacks.on_state_change:
            self._callbacks.on_state_change(self._state)

    def _emit_progress(self) -> None:
        if self._recording is None or not self._callbacks.on_progress:
            return
        duration = self.get_duration()
        progress = min(self._current_time / duration, 1.0) if duration > 0 else 1.0
        self._callbacks.on_progress(self._current_time, duration, progress)


def create_player(
    recording: Optional[SessionRecording] = None,
    speed: float = 1.0,
    clock: Optional[Callable[[], float]] = None,
    scheduler: Optional[TickScheduler] = None,
) -> SessionPlayer:
    """
    快捷创建回放器

    Args:
        recording: 要加载的录制（可选）
        speed: 回放速度
        clock: 时间源（毫秒）
        scheduler: tick 调度器

    Returns:
        回放器实例
    """
    player = SessionPlayer(ReplayerConfig(speed=speed), clock=clock, scheduler=scheduler)
    if recording is not None:
        player.load(recording)
    return player
