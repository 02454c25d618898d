"""
共享测试夹具
"""

import sys
from pathlib import Path

import pytest

# 添加路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from signmate.protocol.schema import ASLSign, TranscriptionSegment
from signmate.replay.message import (
    MarkerData,
    MarkerEvent,
    SessionEndEvent,
    SessionMetadata,
    SessionRecording,
    SessionStartEvent,
)
from signmate.replay.recorder import SessionRecorder
from signmate.replay.replayer import PlaybackCallbacks, PlayerState, SessionPlayer
from signmate.replay.scheduler import ManualClock, ManualTickScheduler

START_EPOCH_MS = 1_700_000_000_000


def make_segment(text: str, is_final: bool = True, seg_id: str = "seg") -> TranscriptionSegment:
    return TranscriptionSegment(id=seg_id, text=text, confidence=0.9, is_final=is_final)


def make_sign(gloss: str, duration: float = 500) -> ASLSign:
    return ASLSign(gloss=gloss, duration=duration)


def make_recording(events, duration: int) -> SessionRecording:
    """直接用事件列表构造录制"""
    metadata = SessionMetadata(
        id="session-test",
        name="Test Session",
        start_time=START_EPOCH_MS,
        end_time=START_EPOCH_MS + duration,
        duration=duration,
    )
    return SessionRecording(metadata=metadata, events=tuple(events))


class PlaybackHarness:
    """手动驱动回放，记录所有回调"""

    def __init__(self, player: SessionPlayer, clock: ManualClock, scheduler: ManualTickScheduler):
        self.player = player
        self.clock = clock
        self.scheduler = scheduler
        self.calls = []
        self.states = []
        self.progress = []

    def step(self, ms: float) -> int:
        self.clock.advance(ms)
        return self.scheduler.run_pending()

    def run(self, total_ms: float, step_ms: float = 100) -> None:
        elapsed = 0.0
        while elapsed < total_ms:
            self.step(step_ms)
            elapsed += step_ms

    def run_until_ended(self, step_ms: float = 100, max_ticks: int = 10_000) -> int:
        """返回到达 ended 所用的 tick 数"""
        ticks = 0
        while self.player.state != PlayerState.ENDED and ticks < max_ticks:
            self.step(step_ms)
            ticks += 1
        return ticks


@pytest.fixture
def clock():
    return ManualClock(start=START_EPOCH_MS)


@pytest.fixture
def recorder(clock):
    return SessionRecorder(clock=clock)


@pytest.fixture
def scheduler():
    return ManualTickScheduler()


@pytest.fixture
def player_clock():
    return ManualClock()


@pytest.fixture
def harness(player_clock, scheduler):
    player = SessionPlayer(clock=player_clock, scheduler=scheduler)
    h = PlaybackHarness(player, player_clock, scheduler)
    player.set_callbacks(
        PlaybackCallbacks(
            on_transcription=lambda seg: h.calls.append(("transcription", seg.text)),
            on_translation=lambda signs, text: h.calls.append(
                ("translation", text, tuple(s.gloss for s in signs))
            ),
            on_sign_start=lambda sign, index: h.calls.append(("sign_start", sign.gloss, index)),
            on_sign_end=lambda sign, index: h.calls.append(("sign_end", sign.gloss, index)),
            on_marker=lambda label, notes: h.calls.append(("marker", label, notes)),
            on_error=lambda code, message: h.calls.append(("error", code, message)),
            on_state_change=lambda state: h.states.append(state),
            on_progress=lambda current, total, progress: h.progress.append(
                (current, total, progress)
            ),
        )
    )
    return h


@pytest.fixture
def marker_recording():
    """t=0 session_start, t=1000 marker "intro", t=5000 session_end"""
    return make_recording(
        [
            SessionStartEvent(id="event-0", timestamp=0),
            MarkerEvent(id="event-1", timestamp=1000, data=MarkerData(label="intro", notes="opening")),
            SessionEndEvent(id="event-2", timestamp=5000),
        ],
        duration=5000,
    )


@pytest.fixture
def live_recording(clock, recorder):
    """通过录制器生成的完整录制"""
    recorder.start(name="Live", event_name="Conference", venue="Hall A")
    clock.advance(500)
    recorder.record_transcription(make_segment("hello world", seg_id="s1"), latency=120)
    clock.advance(300)
    signs = [make_sign("HELLO"), make_sign("WORLD")]
    recorder.record_translation("hello world", signs, [], latency=80)
    recorder.record_sign_start(signs[0], 0)
    clock.advance(500)
    recorder.record_sign_end(signs[0], 0)
    recorder.record_sign_start(signs[1], 1)
    clock.advance(500)
    recorder.record_sign_end(signs[1], 1)
    clock.advance(200)
    recorder.add_marker("q-and-a", color="#ff0000", notes="questions")
    clock.advance(1000)
    recorder.record_error("ASR_TIMEOUT", "speech service timed out", details="retrying")
    clock.advance(1000)
    return recorder.stop()
