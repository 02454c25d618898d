"""
SignMate Replay Message Types - 会话事件模型

会话录制的规范数据结构（基于 Pydantic）：
- SessionEvent: 带标签的事件联合类型，每种 EventKind 一个负载结构
- SessionStats: 可由事件序列完全推导的统计信息
- SessionMetadata: 会话元数据
- SessionRecording: 导出/导入的基本单位，停止录制后只读

时间戳均为相对会话开始的毫秒数（t0 = 0），与录制时的墙钟时间无关。
所有模型都是不可变的（frozen），回放器不会修改已加载的录制。
"""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Discriminator, Field, Tag

from ..protocol.schema import WIRE_CONFIG, ASLSign, TranscriptionSegment


FORMAT_VERSION = "1.0.0"


class EventKind(str, Enum):
    """事件类型枚举"""

    SESSION_START = "session_start"
    SESSION_END = "session_end"
    TRANSCRIPTION = "transcription"
    TRANSLATION = "translation"
    SIGN_START = "sign_start"
    SIGN_END = "sign_end"
    ERROR = "error"
    MARKER = "marker"
    STATUS_CHANGE = "status_change"
    CONFIG_CHANGE = "config_change"


class SessionStats(BaseModel):
    """会话统计（可由事件序列重新计算）"""

    model_config = WIRE_CONFIG

    total_words: int = Field(default=0, ge=0, description="最终识别结果的总词数")
    total_signs: int = Field(default=0, ge=0, description="翻译得到的手语词总数")
    total_errors: int = Field(default=0, ge=0, description="错误事件数")
    average_latency: float = Field(default=0.0, ge=0, description="平均延迟（毫秒）")
    peak_latency: float = Field(default=0.0, ge=0, description="峰值延迟（毫秒）")
    transcription_count: int = Field(default=0, ge=0, description="识别事件数")


class SessionMetadata(BaseModel):
    """录制会话元数据"""

    model_config = WIRE_CONFIG

    id: str = Field(..., description="会话ID")
    name: str = Field(..., description="会话名称")
    event_name: Optional[str] = Field(default=None, description="活动名称")
    venue: Optional[str] = Field(default=None, description="场地")
    start_time: int = Field(..., ge=0, description="开始时间（墙钟 epoch 毫秒）")
    end_time: Optional[int] = Field(default=None, ge=0, description="结束时间（墙钟 epoch 毫秒）")
    duration: Optional[int] = Field(default=None, ge=0, description="持续时间（毫秒）")
    language: str = Field(default="en-US", description="源语言")
    version: str = Field(default=FORMAT_VERSION, description="录制格式版本")
    stats: SessionStats = Field(default_factory=SessionStats)

    @property
    def duration_formatted(self) -> str:
        """格式化持续时间"""
        mins, secs = divmod(int((self.duration or 0) / 1000), 60)
        return f"{mins:02d}:{secs:02d}"


# ==================== 事件负载 ====================


class SessionStartData(BaseModel):
    model_config = WIRE_CONFIG

    metadata: Optional[SessionMetadata] = None


class SessionEndData(BaseModel):
    model_config = WIRE_CONFIG

    reason: str = "manual_stop"


class TranscriptionData(BaseModel):
    model_config = WIRE_CONFIG

    segment: TranscriptionSegment
    latency: float = Field(default=0.0, ge=0)


class TranslationData(BaseModel):
    model_config = WIRE_CONFIG

    source_text: str = ""
    signs: Tuple[ASLSign, ...] = ()
    unmapped_words: Tuple[str, ...] = ()
    latency: float = Field(default=0.0, ge=0)


class SignData(BaseModel):
    model_config = WIRE_CONFIG

    sign: ASLSign
    index: int = Field(default=0, ge=0)


class ErrorData(BaseModel):
    model_config = WIRE_CONFIG

    code: str
    message: str
    details: Optional[str] = None


class MarkerData(BaseModel):
    model_config = WIRE_CONFIG

    label: str
    color: Optional[str] = None
    notes: Optional[str] = None


class StatusChangeData(BaseModel):
    model_config = WIRE_CONFIG

    status: str


# ==================== 事件 ====================


class BaseEvent(BaseModel):
    """事件公共字段"""

    model_config = WIRE_CONFIG

    id: str = Field(..., description="事件ID")
    timestamp: int = Field(..., ge=0, description="相对会话开始的毫秒数")

    @property
    def kind(self) -> Optional[EventKind]:
        """事件类型（未知类型返回 None）"""
        try:
            return EventKind(self.type)
        except ValueError:
            return None


class SessionStartEvent(BaseEvent):
    type: Literal["session_start"] = "session_start"
    data: SessionStartData = Field(default_factory=SessionStartData)


class SessionEndEvent(BaseEvent):
    type: Literal["session_end"] = "session_end"
    data: SessionEndData = Field(default_factory=SessionEndData)


class TranscriptionEvent(BaseEvent):
    type: Literal["transcription"] = "transcription"
    data: TranscriptionData


class TranslationEvent(BaseEvent):
    type: Literal["translation"] = "translation"
    data: TranslationData


class SignStartEvent(BaseEvent):
    type: Literal["sign_start"] = "sign_start"
    data: SignData


class SignEndEvent(BaseEvent):
    type: Literal["sign_end"] = "sign_end"
    data: SignData


class ErrorEvent(BaseEvent):
    type: Literal["error"] = "error"
    data: ErrorData


class MarkerEvent(BaseEvent):
    type: Literal["marker"] = "marker"
    data: MarkerData


class StatusChangeEvent(BaseEvent):
    type: Literal["status_change"] = "status_change"
    data: StatusChangeData


class ConfigChangeEvent(BaseEvent):
    type: Literal["config_change"] = "config_change"
    data: Dict[str, Any] = Field(default_factory=dict)


class UnknownEvent(BaseEvent):
    """新版本录制中出现的未知事件类型，原样保留"""

    type: str
    data: Any = None


_UNKNOWN_TAG = "unknown"
_KNOWN_TAGS = frozenset(kind.value for kind in EventKind)


def _event_tag(value: Any) -> str:
    """根据 type 字段选择联合类型分支"""
    if isinstance(value, dict):
        tag = value.get("type")
    else:
        tag = getattr(value, "type", None)
    if isinstance(tag, EventKind):
        tag = tag.value
    return tag if tag in _KNOWN_TAGS else _UNKNOWN_TAG


SessionEvent = Annotated[
    Union[
        Annotated[SessionStartEvent, Tag("session_start")],
        Annotated[SessionEndEvent, Tag("session_end")],
        Annotated[TranscriptionEvent, Tag("transcription")],
        Annotated[TranslationEvent, Tag("translation")],
        Annotated[SignStartEvent, Tag("sign_start")],
        Annotated[SignEndEvent, Tag("sign_end")],
        Annotated[ErrorEvent, Tag("error")],
        Annotated[MarkerEvent, Tag("marker")],
        Annotated[StatusChangeEvent, Tag("status_change")],
        Annotated[ConfigChangeEvent, Tag("config_change")],
        Annotated[UnknownEvent, Tag(_UNKNOWN_TAG)],
    ],
    Discriminator(_event_tag),
]


class SessionRecording(BaseModel):
    """
    完整的会话录制

    events 按追加顺序排列，时间戳单调不减；
    第一个事件总是 session_start，正常停止时最后一个事件是 session_end。
    """

    model_config = WIRE_CONFIG

    metadata: SessionMetadata
    events: Tuple[SessionEvent, ...] = ()

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def duration(self) -> int:
        """回放时长：元数据中的 duration，缺失时取最后一个事件时间戳"""
        if self.metadata.duration is not None:
            return self.metadata.duration
        return self.events[-1].timestamp if self.events else 0

    def markers(self) -> Tuple["MarkerInfo", ...]:
        """按时间顺序列出所有标记"""
        return tuple(
            MarkerInfo(
                label=event.data.label,
                timestamp=event.timestamp,
                notes=event.data.notes,
                color=event.data.color,
            )
            for event in self.events
            if isinstance(event, MarkerEvent)
        )


class MarkerInfo(BaseModel):
    """标记摘要（用于导航）"""

    model_config = WIRE_CONFIG

    label: str
    timestamp: int
    notes: Optional[str] = None
    color: Optional[str] = None
