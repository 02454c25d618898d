"""
SignMate Replay Recorder - 会话录制器

在实时会话中记录所有流水线事件：
- 识别结果、翻译结果、手语开始/结束、标记、错误、状态变化
- 时间戳相对会话开始（毫秒），按到达顺序追加
- 增量维护统计信息
- 停止后返回不可变的 SessionRecording
"""

import os
import uuid
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional
from dataclasses import dataclass

from ..protocol.schema import ASLSign, TranscriptionSegment
from .listeners import ListenerRegistry, Subscription
from .message import (
    FORMAT_VERSION,
    ConfigChangeEvent,
    ErrorData,
    ErrorEvent,
    MarkerData,
    MarkerEvent,
    SessionEndData,
    SessionEndEvent,
    SessionMetadata,
    SessionRecording,
    SessionStartData,
    SessionStartEvent,
    SessionStats,
    SignData,
    SignEndEvent,
    SignStartEvent,
    StatusChangeData,
    StatusChangeEvent,
    TranscriptionData,
    TranscriptionEvent,
    TranslationData,
    TranslationEvent,
)
from .scheduler import wall_clock_ms
from .stats import StatsAccumulator

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = os.environ.get("SIGNMATE_LANGUAGE", "en-US")


class RecorderState(str, Enum):
    """录制状态"""

    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"


@dataclass
class RecorderConfig:
    """录制器配置"""

    language: str = DEFAULT_LANGUAGE
    version: str = FORMAT_VERSION
    name_format: str = "Session %Y-%m-%d %H:%M:%S"
    # 为 True 时暂停期间的时长不计入后续事件时间戳
    exclude_paused_time: bool = False


class SessionRecorder:
    """
    会话录制器

    使用示例：
    ```python
    from signmate.replay import SessionRecorder, export_recording

    recorder = SessionRecorder()
    recorder.start(name="Keynote", venue="Hall A")

    recorder.record_transcription(segment, latency=120)
    recorder.record_translation("hello", signs, [], latency=80)
    recorder.add_marker("intro")

    recording = recorder.stop()
    text = export_recording(recording)
    ```

    record_* 方法在非录制状态下静默忽略（返回 False），
    以容忍停止前后才到达的异步回调。
    负延迟（上游时钟偏差）按 0 记录；手语序号 index 须为非负整数。
    时间源可返回小数毫秒，录制时取整。
    """

    def __init__(
        self,
        config: Optional[RecorderConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or RecorderConfig()
        self._clock = clock or wall_clock_ms

        self._state = RecorderState.IDLE
        self._events: List[Any] = []
        self._metadata: Optional[SessionMetadata] = None
        self._stats = StatsAccumulator()
        self._listeners = ListenerRegistry("recorder")

        self._start_time = 0
        self._event_seq = 0
        self._last_timestamp = 0

        # 暂停计时
        self._paused_at: Optional[int] = None
        self._paused_total = 0

    # ==================== 状态 ====================

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == RecorderState.RECORDING

    @property
    def is_paused(self) -> bool:
        return self._state == RecorderState.PAUSED

    # ==================== 生命周期 ====================

    def start(
        self,
        name: Optional[str] = None,
        event_name: Optional[str] = None,
        venue: Optional[str] = None,
        language: Optional[str] = None,
    ) -> bool:
        """开始录制会话（已在录制时仅告警，不重置）"""
        if self._state != RecorderState.IDLE:
            logger.warning("已有录制会话正在进行")
            return False

        self._events = []
        self._event_seq = 0
        self._last_timestamp = 0
        self._paused_at = None
        self._paused_total = 0
        self._stats.reset()
        self._start_time = self._now()

        started = datetime.fromtimestamp(self._start_time / 1000)
        self._metadata = SessionMetadata(
            id=f"session-{self._start_time}-{uuid.uuid4().hex[:9]}",
            name=name or started.strftime(self.config.name_format),
            event_name=event_name,
            venue=venue,
            start_time=self._start_time,
            language=language or self.config.language,
            version=self.config.version,
            stats=SessionStats(),
        )
        self._state = RecorderState.RECORDING

        self._append(SessionStartEvent, SessionStartData(metadata=self._metadata), at=self._start_time)
        logger.info(f"开始录制会话: {self._metadata.id}")
        return True

    def stop(self) -> Optional[SessionRecording]:
        """停止录制，返回不可变的录制快照；未在录制时返回 None"""
        if self._state == RecorderState.IDLE:
            logger.warning("没有正在进行的录制")
            return None

        now = self._now()
        if self._paused_at is not None:
            self._paused_total += max(0, now - self._paused_at)
            self._paused_at = None

        end_event = self._append(SessionEndEvent, SessionEndData(reason="manual_stop"), at=now)

        self._metadata = self._metadata.model_copy(
            update={
                "end_time": max(now, self._start_time),
                "duration": end_event.timestamp,
                "stats": self._stats.snapshot(),
            }
        )
        self._state = RecorderState.IDLE

        logger.info(
            f"停止录制会话: {self._metadata.id}, "
            f"事件数: {len(self._events)}, "
            f"持续时间: {self._metadata.duration_formatted}"
        )
        return self.get_recording()

    def pause(self) -> bool:
        """暂停录制（记录 status_change 事件）"""
        if self._state != RecorderState.RECORDING:
            return False
        now = self._now()
        self._state = RecorderState.PAUSED
        self._append(StatusChangeEvent, StatusChangeData(status="paused"), at=now)
        self._paused_at = now
        return True

    def resume(self) -> bool:
        """恢复录制（记录 status_change 事件）"""
        if self._state != RecorderState.PAUSED:
            return False
        now = self._now()
        if self._paused_at is not None:
            self._paused_total += max(0, now - self._paused_at)
            self._paused_at = None
        self._state = RecorderState.RECORDING
        self._append(StatusChangeEvent, StatusChangeData(status="resumed"), at=now)
        return True

    # ==================== 事件录制 ====================

    def record_transcription(self, segment: TranscriptionSegment, latency: float) -> bool:
        """录制识别结果"""
        if not self.is_recording:
            return False
        self._append(TranscriptionEvent, TranscriptionData(segment=segment, latency=max(0.0, latency)))
        return True

    def record_translation(
        self,
        source_text: str,
        signs: Iterable[ASLSign],
        unmapped_words: Iterable[str],
        latency: float,
    ) -> bool:
        """录制翻译结果"""
        if not self.is_recording:
            return False
        data = TranslationData(
            source_text=source_text,
            signs=tuple(signs),
            unmapped_words=tuple(unmapped_words),
            latency=max(0.0, latency),
        )
        self._append(TranslationEvent, data)
        return True

    def record_sign_start(self, sign: ASLSign, index: int) -> bool:
        """录制手语动画开始"""
        if not self.is_recording:
            return False
        self._append(SignStartEvent, SignData(sign=sign, index=index))
        return True

    def record_sign_end(self, sign: ASLSign, index: int) -> bool:
        """录制手语动画结束"""
        if not self.is_recording:
            return False
        self._append(SignEndEvent, SignData(sign=sign, index=index))
        return True

    def record_error(self, code: str, message: str, details: Optional[str] = None) -> bool:
        """录制错误"""
        if not self.is_recording:
            return False
        self._append(ErrorEvent, ErrorData(code=code, message=message, details=details))
        return True

    def add_marker(
        self,
        label: str,
        color: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> bool:
        """添加导航标记"""
        if not self.is_recording:
            return False
        self._append(MarkerEvent, MarkerData(label=label, color=color, notes=notes))
        return True

    def record_config_change(self, changes: Dict[str, Any]) -> bool:
        """录制配置变化"""
        if not self.is_recording:
            return False
        self._append(ConfigChangeEvent, dict(changes))
        return True

    def _now(self) -> int:
        """当前墙钟毫秒（时间源可能返回小数）"""
        return int(self._clock())

    def _timestamp(self, now: int) -> int:
        """相对时间戳，保证单调不减"""
        elapsed = now - self._start_time
        if self.config.exclude_paused_time:
            elapsed -= self._paused_total
        return max(elapsed, self._last_timestamp, 0)

    def _append(self, event_cls, data, at: Optional[int] = None):
        """追加事件、更新统计并通知订阅者"""
        timestamp = self._timestamp(self._now() if at is None else at)
        event = event_cls(id=f"event-{self._event_seq}", timestamp=timestamp, data=data)
        self._event_seq += 1
        self._last_timestamp = timestamp

        self._events.append(event)
        self._stats.observe(event)
        logger.debug(f"录制事件 {event.id}: {event.type} @ {timestamp}ms")

        self._listeners.emit(event)
        return event

    # ==================== 订阅 ====================

    def subscribe(self, callback: Callable[[Any], None]) -> Subscription:
        """
        订阅实时事件

        Returns:
            Subscription 句柄，调用即取消订阅
        """
        return self._listeners.add(callback)

    # ==================== 查询 ====================

    def get_recording(self) -> Optional[SessionRecording]:
        """当前（或最近一次）录制的快照"""
        if self._metadata is None:
            return None
        metadata = self._metadata
        if self._state != RecorderState.IDLE:
            metadata = metadata.model_copy(update={"stats": self._stats.snapshot()})
        return SessionRecording(metadata=metadata, events=tuple(self._events))

    def get_stats(self) -> SessionStats:
        return self._stats.snapshot()

    def get_event_count(self) -> int:
        return len(self._events)

    def get_duration(self) -> int:
        """录制中返回已录制时长，空闲时返回最近一次录制的时长"""
        if self._state == RecorderState.IDLE:
            if self._metadata is None:
                return 0
            return self._metadata.duration or 0
        now = self._now()
        if self._paused_at is not None and self.config.exclude_paused_time:
            now = self._paused_at
        return self._timestamp(now)
