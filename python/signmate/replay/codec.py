"""
SignMate Replay Codec - 录制序列化

JSON 传输格式（camelCase 键）：
{
  "metadata": {...},
  "events": [{"id", "type", "timestamp", "data"}, ...]
}

导入时只做结构解析，格式错误直接抛出 pydantic.ValidationError。
"""

import gzip
import logging
from pathlib import Path
from typing import Optional, Union

from .message import SessionRecording

logger = logging.getLogger(__name__)

FILE_PREFIX = "signmate-session-"


def export_recording(recording: SessionRecording, indent: Optional[int] = 2) -> str:
    """序列化录制为 JSON 文本（输出确定）"""
    return recording.model_dump_json(by_alias=True, indent=indent)


def import_recording(text: Union[str, bytes]) -> SessionRecording:
    """从 JSON 文本解析录制"""
    return SessionRecording.model_validate_json(text)


def recording_filename(recording: SessionRecording, compress: bool = False) -> str:
    """默认文件名"""
    filename = f"{FILE_PREFIX}{recording.metadata.id}.json"
    if compress:
        filename += ".gz"
    return filename


def dump_recording(
    recording: SessionRecording,
    path: Union[str, Path],
    compress: Optional[bool] = None,
) -> Path:
    """
    写入文件

    Args:
        recording: 录制
        path: 目标文件路径
        compress: 是否 gzip 压缩；None 时按扩展名 .gz 判断

    Returns:
        实际写入的路径
    """
    filepath = Path(path)
    if compress is None:
        compress = filepath.suffix == ".gz"

    text = export_recording(recording)
    if compress:
        with gzip.open(filepath, "wt", encoding="utf-8") as f:
            f.write(text)
    else:
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(text)

    logger.debug(f"保存录制 {recording.metadata.id} 到 {filepath}")
    return filepath


def load_recording(path: Union[str, Path]) -> SessionRecording:
    """从文件读取录制（.gz 自动解压）"""
    filepath = Path(path)
    if filepath.suffix == ".gz":
        with gzip.open(filepath, "rt", encoding="utf-8") as f:
            text = f.read()
    else:
        with open(filepath, "r", encoding="utf-8") as f:
            text = f.read()
    return import_recording(text)
