"""
SignMate Replay Module - 会话录制与回放

提供实时会话的事件录制与确定性回放：
- message: 事件与录制数据模型（基于 Pydantic）
- stats: 增量统计
- recorder: 会话录制器
- replayer: 虚拟时间回放器
- scheduler: 时间源与 tick 调度器
- codec: JSON 序列化
- session: 本地会话管理
"""

from .message import (
    EventKind,
    SessionEvent,
    SessionStartEvent,
    SessionEndEvent,
    TranscriptionEvent,
    TranslationEvent,
    SignStartEvent,
    SignEndEvent,
    ErrorEvent,
    MarkerEvent,
    StatusChangeEvent,
    ConfigChangeEvent,
    UnknownEvent,
    SessionStats,
    SessionMetadata,
    SessionRecording,
    MarkerInfo,
)
from .stats import StatsAccumulator, compute_stats, stats_match
from .listeners import ListenerRegistry, Subscription
from .scheduler import (
    TickScheduler,
    ThreadingTickScheduler,
    AsyncioTickScheduler,
    ManualTickScheduler,
    ManualClock,
    monotonic_ms,
    wall_clock_ms,
)
from .recorder import (
    SessionRecorder,
    RecorderConfig,
    RecorderState,
)
from .replayer import (
    SessionPlayer,
    ReplayerConfig,
    PlayerState,
    PlaybackCallbacks,
    create_player,
)
from .codec import (
    export_recording,
    import_recording,
    dump_recording,
    load_recording,
)
from .session import (
    SessionManager,
    SessionInfo,
    list_sessions,
    get_latest_session,
)

__all__ = [
    # Message types
    "EventKind",
    "SessionEvent",
    "SessionStartEvent",
    "SessionEndEvent",
    "TranscriptionEvent",
    "TranslationEvent",
    "SignStartEvent",
    "SignEndEvent",
    "ErrorEvent",
    "MarkerEvent",
    "StatusChangeEvent",
    "ConfigChangeEvent",
    "UnknownEvent",
    "SessionStats",
    "SessionMetadata",
    "SessionRecording",
    "MarkerInfo",
    # Stats
    "StatsAccumulator",
    "compute_stats",
    "stats_match",
    # Listeners
    "ListenerRegistry",
    "Subscription",
    # Scheduling
    "TickScheduler",
    "ThreadingTickScheduler",
    "AsyncioTickScheduler",
    "ManualTickScheduler",
    "ManualClock",
    "monotonic_ms",
    "wall_clock_ms",
    # Recorder
    "SessionRecorder",
    "RecorderConfig",
    "RecorderState",
    # Player
    "SessionPlayer",
    "ReplayerConfig",
    "PlayerState",
    "PlaybackCallbacks",
    "create_player",
    # Codec
    "export_recording",
    "import_recording",
    "dump_recording",
    "load_recording",
    # Session
    "SessionManager",
    "SessionInfo",
    "list_sessions",
    "get_latest_session",
]
