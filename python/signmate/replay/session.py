"""
SignMate Replay Session Manager - 会话管理

管理本地录制目录中的会话文件：
- 保存/加载录制
- 列出所有会话（按时间/大小/时长/事件数排序）
- 清理旧会话
- 汇总统计
"""

import os
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, List, Dict, Any
from dataclasses import dataclass

from pydantic import ValidationError

from .codec import FILE_PREFIX, dump_recording, load_recording, recording_filename
from .message import SessionRecording

logger = logging.getLogger(__name__)

# 默认录制目录
DEFAULT_RECORDINGS_DIR = os.environ.get("SIGNMATE_RECORDINGS_DIR", "./recordings")


@dataclass
class SessionInfo:
    """会话信息摘要"""

    session_id: str
    path: Path
    name: str = ""
    start_time: int = 0
    duration: int = 0
    total_events: int = 0
    total_words: int = 0
    total_signs: int = 0
    size_bytes: int = 0
    version: str = ""

    @property
    def start_datetime(self) -> datetime:
        """开始时间"""
        return datetime.fromtimestamp(self.start_time / 1000) if self.start_time else datetime.now()

    @property
    def duration_formatted(self) -> str:
        """格式化持续时间"""
        mins, secs = divmod(int(self.duration / 1000), 60)
        return f"{mins:02d}:{secs:02d}"

    @property
    def size_formatted(self) -> str:
        """格式化大小"""
        if self.size_bytes < 1024:
            return f"{self.size_bytes} B"
        elif self.size_bytes < 1024 * 1024:
            return f"{self.size_bytes / 1024:.1f} KB"
        else:
            return f"{self.size_bytes / (1024 * 1024):.1f} MB"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "path": str(self.path),
            "name": self.name,
            "start_time": self.start_time,
            "duration": self.duration,
            "total_events": self.total_events,
            "total_words": self.total_words,
            "total_signs": self.total_signs,
            "size_bytes": self.size_bytes,
            "version": self.version,
        }


class SessionManager:
    """
    会话管理器

    使用示例：
    ```python
    from signmate.replay import SessionManager

    manager = SessionManager()

    # 保存录制
    manager.save(recording)

    # 列出所有会话
    for session in manager.list_sessions():
        print(f"{session.session_id}: {session.duration_formatted}")

    # 加载最新会话
    latest = manager.get_latest()
    recording = manager.load(latest.session_id)

    # 删除旧会话
    manager.cleanup(keep_count=10)
    ```
    """

    def __init__(self, recordings_dir: Optional[str] = None, compress: bool = False):
        self.recordings_dir = Path(recordings_dir or DEFAULT_RECORDINGS_DIR)
        self.recordings_dir.mkdir(parents=True, exist_ok=True)
        self.compress = compress

    def save(self, recording: SessionRecording, compress: Optional[bool] = None) -> Path:
        """保存录制，返回文件路径"""
        if compress is None:
            compress = self.compress
        filepath = self.recordings_dir / recording_filename(recording, compress=compress)
        dump_recording(recording, filepath, compress=compress)
        logger.info(f"保存会话: {recording.metadata.id} -> {filepath.name}")
        return filepath

    def _session_files(self) -> List[Path]:
        files = []
        for pattern in (f"{FILE_PREFIX}*.json", f"{FILE_PREFIX}*.json.gz"):
            files.extend(self.recordings_dir.glob(pattern))
        return sorted(files)

    @staticmethod
    def _session_id_from_path(filepath: Path) -> str:
        name = filepath.name
        for suffix in (".json.gz", ".json"):
            if name.endswith(suffix):
                name = name[: -len(suffix)]
                break
        return name[len(FILE_PREFIX):]

    def list_sessions(
        self,
        sort_by: str = "time",
        reverse: bool = True,
    ) -> List[SessionInfo]:
        """
        列出所有会话

        Args:
            sort_by: 排序方式 - "time", "size", "events", "duration"
            reverse: 是否降序

        Returns:
            会话信息列表
        """
        sessions = []
        for filepath in self._session_files():
            session_info = self._load_session_info(filepath)
            if session_info:
                sessions.append(session_info)

        if sort_by == "time":
            sessions.sort(key=lambda s: s.start_time, reverse=reverse)
        elif sort_by == "size":
            sessions.sort(key=lambda s: s.size_bytes, reverse=reverse)
        elif sort_by == "events":
            sessions.sort(key=lambda s: s.total_events, reverse=reverse)
        elif sort_by == "duration":
            sessions.sort(key=lambda s: s.duration, reverse=reverse)

        return sessions

    def _load_session_info(self, filepath: Path) -> Optional[SessionInfo]:
        """加载会话信息（无法解析的文件记录日志并跳过）"""
        try:
            recording = load_recording(filepath)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"加载会话信息失败 {filepath}: {e}")
            return None

        metadata = recording.metadata
        return SessionInfo(
            session_id=metadata.id,
            path=filepath,
            name=metadata.name,
            start_time=metadata.start_time,
            duration=recording.duration,
            total_events=recording.event_count,
            total_words=metadata.stats.total_words,
            total_signs=metadata.stats.total_signs,
            size_bytes=filepath.stat().st_size,
            version=metadata.version,
        )

    def _find_file(self, session_id: str) -> Optional[Path]:
        for filepath in self._session_files():
            if self._session_id_from_path(filepath) == session_id:
                return filepath

        # 模糊匹配
        matches = [
            filepath
            for filepath in self._session_files()
            if session_id in self._session_id_from_path(filepath)
        ]
        return matches[0] if matches else None

    def get_session(self, session_id: str) -> Optional[SessionInfo]:
        """获取指定会话信息"""
        filepath = self._find_file(session_id)
        if filepath is None:
            return None
        return self._load_session_info(filepath)

    def load(self, session_id: str) -> SessionRecording:
        """加载会话录制"""
        filepath = self._find_file(session_id)
        if filepath is None:
            raise FileNotFoundError(f"找不到会话: {session_id}")
        return load_recording(filepath)

    def get_latest(self) -> Optional[SessionInfo]:
        """获取最新会话"""
        sessions = self.list_sessions(sort_by="time", reverse=True)
        return sessions[0] if sessions else None

    def get_oldest(self) -> Optional[SessionInfo]:
        """获取最旧会话"""
        sessions = self.list_sessions(sort_by="time", reverse=False)
        return sessions[0] if sessions else None

    def delete_session(self, session_id: str) -> bool:
        """删除会话"""
        filepath = self._find_file(session_id)
        if filepath is None:
            return False

        try:
            filepath.unlink()
            logger.info(f"删除会话: {session_id}")
            return True
        except OSError as e:
            logger.error(f"删除会话失败 {session_id}: {e}")
            return False

    def cleanup(self, keep_count: int = 10, keep_days: Optional[int] = None) -> int:
        """
        清理旧会话

        Args:
            keep_count: 保留最新的会话数量
            keep_days: 保留最近 N 天的会话

        Returns:
            删除的会话数量
        """
        sessions = self.list_sessions(sort_by="time", reverse=True)
        deleted = 0

        for session in sessions[keep_count:]:
            if keep_days is not None:
                age_days = (datetime.now() - session.start_datetime).days
                if age_days <= keep_days:
                    continue

            if self.delete_session(session.session_id):
                deleted += 1

        logger.info(f"清理完成，删除 {deleted} 个会话")
        return deleted

    def get_total_size(self) -> int:
        """获取总大小（字节）"""
        return sum(s.size_bytes for s in self.list_sessions())

    def get_stats(self) -> Dict[str, Any]:
        """获取统计信息"""
        sessions = self.list_sessions()
        return {
            "total_sessions": len(sessions),
            "total_size": sum(s.size_bytes for s in sessions),
            "total_events": sum(s.total_events for s in sessions),
            "total_words": sum(s.total_words for s in sessions),
            "total_signs": sum(s.total_signs for s in sessions),
            "total_duration": sum(s.duration for s in sessions),
        }


# 便捷函数
def list_sessions(
    recordings_dir: Optional[str] = None,
    sort_by: str = "time",
) -> List[SessionInfo]:
    """列出所有会话"""
    manager = SessionManager(recordings_dir)
    return manager.list_sessions(sort_by=sort_by)


def get_latest_session(
    recordings_dir: Optional[str] = None,
) -> Optional[SessionInfo]:
    """获取最新会话"""
    manager = SessionManager(recordings_dir)
    return manager.get_latest()
