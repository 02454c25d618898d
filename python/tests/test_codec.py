"""
Codec Tests - 录制序列化测试

测试内容：
1. 导出/导入无损
2. camelCase 传输格式
3. 未知事件类型与未知字段的保留
4. 格式错误的输入
5. 文件读写（含 gzip）
"""

import json

import pytest
from pydantic import ValidationError

from signmate.replay.codec import (
    dump_recording,
    export_recording,
    import_recording,
    load_recording,
    recording_filename,
)
from signmate.replay.message import (
    MarkerEvent,
    SessionStartEvent,
    TranslationEvent,
    UnknownEvent,
)
from signmate.replay.stats import compute_stats, stats_match


def minimal_document(events=None):
    return {
        "metadata": {
            "id": "session-1",
            "name": "Imported",
            "startTime": 1_700_000_000_000,
            "duration": 3000,
        },
        "events": events
        if events is not None
        else [{"id": "event-0", "type": "session_start", "timestamp": 0, "data": {}}],
    }


class TestExportImport:
    """导出/导入测试"""

    def test_round_trip(self, live_recording):
        """测试导出后导入得到相同录制"""
        restored = import_recording(export_recording(live_recording))
        assert restored == live_recording
        assert restored.event_count == live_recording.event_count

    def test_export_is_deterministic(self, live_recording):
        """测试多次导出结果一致"""
        assert export_recording(live_recording) == export_recording(live_recording)

    def test_wire_uses_camel_case(self, live_recording):
        """测试传输格式键名"""
        doc = json.loads(export_recording(live_recording))
        metadata = doc["metadata"]
        assert metadata["startTime"] == live_recording.metadata.start_time
        assert metadata["eventName"] == "Conference"
        assert "totalWords" in metadata["stats"]
        assert "averageLatency" in metadata["stats"]

        translation = next(e for e in doc["events"] if e["type"] == "translation")
        assert translation["data"]["sourceText"] == "hello world"
        assert translation["data"]["unmappedWords"] == []

        transcription = next(e for e in doc["events"] if e["type"] == "transcription")
        assert transcription["data"]["segment"]["isFinal"] is True

    def test_event_envelope(self, live_recording):
        """测试事件外层结构"""
        doc = json.loads(export_recording(live_recording))
        first = doc["events"][0]
        assert set(first) == {"id", "type", "timestamp", "data"}
        assert first["type"] == "session_start"
        assert first["data"]["metadata"]["id"] == live_recording.metadata.id

        last = doc["events"][-1]
        assert last["type"] == "session_end"
        assert last["data"] == {"reason": "manual_stop"}

    def test_stats_survive_round_trip(self, live_recording):
        """测试导入后统计仍可由事件重算"""
        restored = import_recording(export_recording(live_recording))
        assert compute_stats(restored.events) == restored.metadata.stats
        assert stats_match(restored) is True

    def test_compact_export(self, live_recording):
        """测试紧凑格式导出"""
        text = export_recording(live_recording, indent=None)
        assert "\n" not in text
        assert import_recording(text) == live_recording


class TestImportValidation:
    """导入校验测试"""

    def test_minimal_document(self):
        """测试最小文档"""
        recording = import_recording(json.dumps(minimal_document()))
        assert recording.metadata.language == "en-US"
        assert recording.metadata.version == "1.0.0"
        assert recording.metadata.stats.total_words == 0
        assert isinstance(recording.events[0], SessionStartEvent)
        assert recording.duration == 3000

    def test_snake_case_keys_accepted(self):
        """测试也接受 snake_case 键"""
        doc = minimal_document()
        doc["metadata"]["start_time"] = doc["metadata"].pop("startTime")
        recording = import_recording(json.dumps(doc))
        assert recording.metadata.start_time == 1_700_000_000_000

    def test_unknown_event_type_preserved(self):
        """测试未知事件类型被保留"""
        events = [
            {"id": "event-0", "type": "session_start", "timestamp": 0, "data": {}},
            {"id": "event-1", "type": "avatar_reload", "timestamp": 10, "data": {"model": "v2"}},
        ]
        recording = import_recording(json.dumps(minimal_document(events)))

        unknown = recording.events[1]
        assert isinstance(unknown, UnknownEvent)
        assert unknown.type == "avatar_reload"
        assert unknown.kind is None
        assert unknown.data == {"model": "v2"}

        doc = json.loads(export_recording(recording))
        assert doc["events"][1]["type"] == "avatar_reload"
        assert doc["events"][1]["data"] == {"model": "v2"}

    def test_unknown_sign_fields_preserved(self):
        """测试手语词中的未知字段被保留"""
        sign = {"gloss": "HELLO", "duration": 400, "avatarHint": "wave"}
        events = [
            {"id": "event-0", "type": "session_start", "timestamp": 0, "data": {}},
            {
                "id": "event-1",
                "type": "translation",
                "timestamp": 20,
                "data": {"sourceText": "hello", "signs": [sign], "latency": 50},
            },
        ]
        recording = import_recording(json.dumps(minimal_document(events)))
        translation = recording.events[1]
        assert isinstance(translation, TranslationEvent)
        assert translation.data.signs[0].gloss == "HELLO"

        doc = json.loads(export_recording(recording))
        assert doc["events"][1]["data"]["signs"][0]["avatarHint"] == "wave"

    def test_marker_event_parsed(self):
        """测试标记事件解析"""
        events = [
            {"id": "event-0", "type": "marker", "timestamp": 5, "data": {"label": "intro"}},
        ]
        recording = import_recording(json.dumps(minimal_document(events)))
        assert isinstance(recording.events[0], MarkerEvent)
        assert recording.markers()[0].label == "intro"

    def test_not_json(self):
        """测试非 JSON 输入"""
        with pytest.raises(ValidationError):
            import_recording("not json at all")

    def test_missing_metadata(self):
        """测试缺少元数据"""
        with pytest.raises(ValidationError):
            import_recording(json.dumps({"events": []}))

    def test_negative_timestamp(self):
        """测试负时间戳"""
        events = [{"id": "event-0", "type": "session_start", "timestamp": -1, "data": {}}]
        with pytest.raises(ValidationError):
            import_recording(json.dumps(minimal_document(events)))

    def test_known_event_with_bad_payload(self):
        """测试已知类型但负载缺少必填字段"""
        events = [{"id": "event-0", "type": "marker", "timestamp": 0, "data": {}}]
        with pytest.raises(ValidationError):
            import_recording(json.dumps(minimal_document(events)))

    def test_confidence_out_of_range(self):
        """测试置信度越界"""
        events = [
            {
                "id": "event-0",
                "type": "transcription",
                "timestamp": 0,
                "data": {"segment": {"text": "hi", "confidence": 1.5}},
            }
        ]
        with pytest.raises(ValidationError):
            import_recording(json.dumps(minimal_document(events)))


class TestFileIO:
    """文件读写测试"""

    def test_filename(self, live_recording):
        """测试默认文件名"""
        name = recording_filename(live_recording)
        assert name == f"signmate-session-{live_recording.metadata.id}.json"
        assert recording_filename(live_recording, compress=True).endswith(".json.gz")

    def test_dump_and_load(self, tmp_path, live_recording):
        """测试写入并读取 JSON 文件"""
        path = dump_recording(live_recording, tmp_path / "session.json")
        assert path.exists()
        assert load_recording(path) == live_recording

    def test_dump_and_load_gzip(self, tmp_path, live_recording):
        """测试 gzip 压缩文件"""
        path = dump_recording(live_recording, tmp_path / "session.json.gz")
        with open(path, "rb") as f:
            assert f.read(2) == b"\x1f\x8b"
        assert load_recording(path) == live_recording

    def test_load_missing_file(self, tmp_path):
        """测试读取不存在的文件"""
        with pytest.raises(FileNotFoundError):
            load_recording(tmp_path / "missing.json")
