"""
Stats & Message Tests - 统计与数据模型测试

测试内容：
1. StatsAccumulator 累加规则
2. compute_stats / stats_match
3. 事件模型与联合类型
4. 录制时长与标记
"""

import logging

import pytest

from signmate.protocol.schema import ASLSign, TranscriptionSegment
from signmate.replay.message import (
    ConfigChangeEvent,
    ErrorData,
    ErrorEvent,
    EventKind,
    MarkerData,
    MarkerEvent,
    SessionMetadata,
    SessionRecording,
    SessionStartEvent,
    SessionStats,
    StatusChangeData,
    StatusChangeEvent,
    TranscriptionData,
    TranscriptionEvent,
    TranslationData,
    TranslationEvent,
)
from signmate.replay.stats import StatsAccumulator, compute_stats, stats_match

from conftest import START_EPOCH_MS, make_recording


def transcription(ts, text, latency, is_final=True):
    segment = TranscriptionSegment(id=f"seg-{ts}", text=text, is_final=is_final)
    return TranscriptionEvent(
        id=f"event-{ts}", timestamp=ts, data=TranscriptionData(segment=segment, latency=latency)
    )


def translation(ts, glosses, latency):
    signs = tuple(ASLSign(gloss=g) for g in glosses)
    return TranslationEvent(
        id=f"event-{ts}",
        timestamp=ts,
        data=TranslationData(source_text=" ".join(glosses).lower(), signs=signs, latency=latency),
    )


def error(ts):
    return ErrorEvent(id=f"event-{ts}", timestamp=ts, data=ErrorData(code="E", message="failed"))


class TestStatsAccumulator:
    """累加器测试"""

    def test_empty(self):
        """测试空序列"""
        stats = compute_stats([])
        assert stats == SessionStats()
        assert stats.average_latency == 0

    def test_mixed_events(self):
        """测试混合事件"""
        events = [
            transcription(0, "good morning everyone", 100),
            transcription(10, "good mor", 40, is_final=False),
            translation(20, ["GOOD", "MORNING", "ALL"], 70),
            error(30),
            error(40),
            MarkerEvent(id="event-50", timestamp=50, data=MarkerData(label="m")),
        ]
        stats = compute_stats(events)
        assert stats.transcription_count == 2
        assert stats.total_words == 3
        assert stats.total_signs == 3
        assert stats.total_errors == 2
        assert stats.peak_latency == 100
        assert stats.average_latency == pytest.approx(70)

    def test_average_is_not_rounded(self):
        """测试平均延迟不取整"""
        events = [transcription(0, "a", 10), transcription(1, "b", 11), translation(2, ["C"], 11)]
        assert compute_stats(events).average_latency == pytest.approx(32 / 3)

    def test_incremental_matches_batch(self):
        """测试增量结果与批量计算一致"""
        events = [transcription(0, "one two", 30), translation(5, ["ONE", "TWO"], 20), error(9)]
        accumulator = StatsAccumulator()
        for event in events:
            accumulator.observe(event)
        assert accumulator.snapshot() == compute_stats(events)

    def test_reset(self):
        """测试重置"""
        accumulator = StatsAccumulator()
        accumulator.observe(error(0))
        accumulator.reset()
        assert accumulator.snapshot() == SessionStats()

    def test_ignores_other_events(self):
        """测试与统计无关的事件"""
        events = [
            SessionStartEvent(id="event-0", timestamp=0),
            StatusChangeEvent(id="event-1", timestamp=1, data=StatusChangeData(status="paused")),
            ConfigChangeEvent(id="event-2", timestamp=2, data={"speed": 2}),
        ]
        assert compute_stats(events) == SessionStats()


class TestStatsMatch:
    """统计校验测试"""

    def test_match(self, live_recording):
        """测试录制器生成的统计与重算一致"""
        assert stats_match(live_recording) is True

    def test_mismatch_logged(self, live_recording, caplog):
        """测试统计被篡改时记录告警"""
        tampered_meta = live_recording.metadata.model_copy(
            update={"stats": SessionStats(total_words=999)}
        )
        tampered = SessionRecording(metadata=tampered_meta, events=live_recording.events)
        with caplog.at_level(logging.WARNING):
            assert stats_match(tampered) is False
        assert "统计不一致" in caplog.text


class TestMessageModels:
    """数据模型测试"""

    def test_event_kind(self):
        """测试事件类型枚举"""
        event = error(0)
        assert event.kind == EventKind.ERROR
        assert event.type == "error"

    def test_events_are_frozen(self):
        """测试事件不可变"""
        event = error(0)
        with pytest.raises(Exception):
            event.timestamp = 5

    def test_word_count(self):
        """测试词数计算"""
        assert TranscriptionSegment(text="").word_count == 0
        assert TranscriptionSegment(text=" \t\n ").word_count == 0
        assert TranscriptionSegment(text="  sign  language\tinterpreting ").word_count == 3

    def test_sign_requires_gloss(self):
        """测试手语词必须有 gloss"""
        with pytest.raises(Exception):
            ASLSign()

    def test_duration_formatted(self):
        """测试时长格式化"""
        metadata = SessionMetadata(id="s", name="n", start_time=START_EPOCH_MS, duration=125_000)
        assert metadata.duration_formatted == "02:05"

    def test_recording_duration_prefers_metadata(self):
        """测试录制时长优先取元数据"""
        recording = make_recording([SessionStartEvent(id="event-0", timestamp=0), error(300)], 1000)
        assert recording.duration == 1000

    def test_recording_duration_empty(self):
        """测试空录制时长为 0"""
        metadata = SessionMetadata(id="s", name="n", start_time=START_EPOCH_MS)
        assert SessionRecording(metadata=metadata).duration == 0

    def test_markers_in_order(self):
        """测试标记按时间顺序列出"""
        recording = make_recording(
            [
                SessionStartEvent(id="event-0", timestamp=0),
                MarkerEvent(id="event-1", timestamp=100, data=MarkerData(label="first", color="#fff")),
                error(150),
                MarkerEvent(id="event-3", timestamp=200, data=MarkerData(label="second", notes="n")),
            ],
            duration=300,
        )
        markers = recording.markers()
        assert [(m.label, m.timestamp) for m in markers] == [("first", 100), ("second", 200)]
        assert markers[0].color == "#fff"
        assert markers[1].notes == "n"
