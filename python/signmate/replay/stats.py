"""
SignMate Replay Stats - 增量统计

录制器在每个事件追加时调用 StatsAccumulator.observe()；
compute_stats() 用同一套规则从事件序列重新计算，
因此存储的统计与重算结果总是一致。
"""

import logging
from typing import Iterable

from .message import (
    ErrorEvent,
    SessionStats,
    TranscriptionEvent,
    TranslationEvent,
)

logger = logging.getLogger(__name__)


class StatsAccumulator:
    """
    统计累加器

    规则：
    - 每个 transcription 事件 transcription_count + 1
    - 仅 is_final 的片段计入 total_words（去除首尾空白后按空白切分）
    - 每个 translation 事件 total_signs 增加其手语词数量
    - 每个 error 事件 total_errors + 1
    - transcription/translation 的延迟参与平均值与峰值计算
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.total_words = 0
        self.total_signs = 0
        self.total_errors = 0
        self.transcription_count = 0
        self.peak_latency = 0.0
        self.latency_sum = 0.0
        self.latency_samples = 0

    @property
    def average_latency(self) -> float:
        if self.latency_samples == 0:
            return 0.0
        return self.latency_sum / self.latency_samples

    def observe(self, event) -> None:
        """根据单个事件更新统计"""
        if isinstance(event, TranscriptionEvent):
            self.transcription_count += 1
            if event.data.segment.is_final:
                self.total_words += event.data.segment.word_count
            self._add_latency(event.data.latency)
        elif isinstance(event, TranslationEvent):
            self.total_signs += len(event.data.signs)
            self._add_latency(event.data.latency)
        elif isinstance(event, ErrorEvent):
            self.total_errors += 1

    def _add_latency(self, latency: float) -> None:
        self.latency_sum += latency
        self.latency_samples += 1
        if latency > self.peak_latency:
            self.peak_latency = latency

    def snapshot(self) -> SessionStats:
        """当前统计快照"""
        return SessionStats(
            total_words=self.total_words,
            total_signs=self.total_signs,
            total_errors=self.total_errors,
            average_latency=self.average_latency,
            peak_latency=self.peak_latency,
            transcription_count=self.transcription_count,
        )


def compute_stats(events: Iterable) -> SessionStats:
    """从事件序列重新计算统计"""
    accumulator = StatsAccumulator()
    for event in events:
        accumulator.observe(event)
    return accumulator.snapshot()


def stats_match(recording) -> bool:
    """检查录制中存储的统计是否与事件序列一致"""
    recomputed = compute_stats(recording.events)
    if recomputed != recording.metadata.stats:
        logger.warning(
            f"统计不一致: {recording.metadata.id}, "
            f"存储: {recording.metadata.stats.model_dump()}, "
            f"重算: {recomputed.model_dump()}"
        )
        return False
    return True
