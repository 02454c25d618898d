"""
SignMate Session Core - 会话录制与回放核心层

包含:
- protocol: 上游负载模式（识别片段、手语词）
- replay: 录制与回放系统
"""

from .protocol.schema import (
    TranscriptionSegment,
    ASLSign,
)
from .replay import (
    EventKind,
    SessionEvent,
    SessionStats,
    SessionMetadata,
    SessionRecording,
    MarkerInfo,
    compute_stats,
    SessionRecorder,
    RecorderConfig,
    RecorderState,
    SessionPlayer,
    ReplayerConfig,
    PlayerState,
    PlaybackCallbacks,
    create_player,
    ManualClock,
    ManualTickScheduler,
    export_recording,
    import_recording,
    SessionManager,
    SessionInfo,
)

__version__ = "1.0.0"

__all__ = [
    # Protocol
    "TranscriptionSegment",
    "ASLSign",
    # Replay
    "EventKind",
    "SessionEvent",
    "SessionStats",
    "SessionMetadata",
    "SessionRecording",
    "MarkerInfo",
    "compute_stats",
    "SessionRecorder",
    "RecorderConfig",
    "RecorderState",
    "SessionPlayer",
    "ReplayerConfig",
    "PlayerState",
    "PlaybackCallbacks",
    "create_player",
    "ManualClock",
    "ManualTickScheduler",
    "export_recording",
    "import_recording",
    "SessionManager",
    "SessionInfo",
]
