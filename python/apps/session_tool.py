#!/usr/bin/env python3
"""
SignMate 会话录制管理与回放工具

用于：
- 列出/查看本地录制
- 校验录制统计是否可由事件序列重现
- 在终端中按原始节奏回放录制（可变速、从标记开始）
- 生成演示录制
- 清理旧录制

使用方法:
    # 列出现有录制
    python apps/session_tool.py --list

    # 查看会话详情
    python apps/session_tool.py --info session-1700000000000

    # 校验统计
    python apps/session_tool.py --verify ./signmate-session-xxx.json

    # 2 倍速回放，从标记 "intro" 开始
    python apps/session_tool.py --replay session-xxx --speed 2 --marker intro

    # 生成演示录制
    python apps/session_tool.py --demo

    # 清理旧录制
    python apps/session_tool.py --cleanup --keep 10
"""

import sys
import argparse
import threading
import logging
from pathlib import Path
from typing import Optional

# 添加父目录到路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from signmate.protocol.schema import ASLSign, TranscriptionSegment
from signmate.replay import (
    ManualClock,
    PlaybackCallbacks,
    PlayerState,
    SessionManager,
    SessionPlayer,
    SessionRecorder,
    SessionRecording,
    ReplayerConfig,
    ThreadingTickScheduler,
    compute_stats,
    load_recording,
    stats_match,
)
from signmate.replay.session import DEFAULT_RECORDINGS_DIR

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("SessionTool")


class Colors:
    """ANSI 颜色代码"""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    MAGENTA = "\033[35m"

    @classmethod
    def success(cls, text: str) -> str:
        return f"{cls.GREEN}{text}{cls.RESET}"

    @classmethod
    def warning(cls, text: str) -> str:
        return f"{cls.YELLOW}{text}{cls.RESET}"

    @classmethod
    def error(cls, text: str) -> str:
        return f"{cls.RED}{text}{cls.RESET}"

    @classmethod
    def info(cls, text: str) -> str:
        return f"{cls.CYAN}{text}{cls.RESET}"

    @classmethod
    def highlight(cls, text: str) -> str:
        return f"{cls.BOLD}{cls.MAGENTA}{text}{cls.RESET}"


def resolve_recording(manager: SessionManager, target: str) -> SessionRecording:
    """target 可以是文件路径或会话ID"""
    path = Path(target)
    if path.is_file():
        return load_recording(path)
    return manager.load(target)


def cmd_list(manager: SessionManager) -> int:
    sessions = manager.list_sessions()
    if not sessions:
        print(Colors.warning("没有找到录制"))
        return 0

    print(Colors.highlight(f"\n共 {len(sessions)} 个会话 ({manager.recordings_dir})\n"))
    for s in sessions:
        print(
            f"  {Colors.info(s.session_id)}  {s.name}\n"
            f"      {s.start_datetime:%Y-%m-%d %H:%M:%S}  时长 {s.duration_formatted}  "
            f"事件 {s.total_events}  词 {s.total_words}  手语 {s.total_signs}  {s.size_formatted}"
        )
    return 0


def cmd_info(recording: SessionRecording) -> int:
    meta = recording.metadata
    stats = meta.stats
    print(Colors.highlight(f"\n{meta.name}"))
    print(f"  ID:       {meta.id}")
    print(f"  活动:     {meta.event_name or '-'}")
    print(f"  场地:     {meta.venue or '-'}")
    print(f"  语言:     {meta.language}")
    print(f"  版本:     {meta.version}")
    print(f"  时长:     {meta.duration_formatted}")
    print(f"  事件数:   {recording.event_count}")
    print(f"  识别数:   {stats.transcription_count}")
    print(f"  总词数:   {stats.total_words}")
    print(f"  手语数:   {stats.total_signs}")
    print(f"  错误数:   {stats.total_errors}")
    print(f"  平均延迟: {stats.average_latency:.1f}ms")
    print(f"  峰值延迟: {stats.peak_latency:.1f}ms")

    markers = recording.markers()
    if markers:
        print(Colors.info("\n  标记:"))
        for marker in markers:
            print(f"    {marker.timestamp / 1000:8.2f}s  {marker.label}  {marker.notes or ''}")
    return 0


def cmd_verify(recording: SessionRecording) -> int:
    if stats_match(recording):
        print(Colors.success(f"✓ 统计一致: {recording.metadata.id}"))
        return 0

    print(Colors.error(f"✗ 统计不一致: {recording.metadata.id}"))
    stored = recording.metadata.stats.model_dump()
    for key, value in compute_stats(recording.events).model_dump().items():
        if stored[key] != value:
            print(f"    {key}: 存储 {stored[key]} / 重算 {value}")
    return 1


def cmd_replay(
    recording: SessionRecording,
    speed: float,
    marker: Optional[str] = None,
) -> int:
    finished = threading.Event()
    scheduler = ThreadingTickScheduler()
    player = SessionPlayer(ReplayerConfig(speed=speed), scheduler=scheduler)

    def on_state_change(state: PlayerState):
        if state == PlayerState.ENDED:
            finished.set()

    def stamp() -> str:
        return Colors.info(f"[{player.get_current_time() / 1000:7.2f}s]")

    player.set_callbacks(
        PlaybackCallbacks(
            on_transcription=lambda seg: print(
                f"{stamp()} 识别{'' if seg.is_final else '(临时)'}: {seg.text}"
            ),
            on_translation=lambda signs, text: print(
                f"{stamp()} 翻译: {text} -> {' '.join(s.gloss for s in signs)}"
            ),
            on_sign_start=lambda sign, index: print(f"{stamp()} 手语 #{index}: {sign.gloss}"),
            on_marker=lambda label, notes: print(
                f"{stamp()} {Colors.highlight('标记')}: {label} {notes or ''}"
            ),
            on_error=lambda code, message: print(f"{stamp()} {Colors.error(code)}: {message}"),
            on_state_change=on_state_change,
        )
    )

    player.load(recording)
    if marker and not player.seek_to_marker(marker):
        print(Colors.warning(f"找不到标记: {marker}，从头开始"))

    print(Colors.highlight(f"\n▶ 回放 {recording.metadata.name} ({player.get_speed()}x)\n"))
    player.play()
    try:
        finished.wait()
    except KeyboardInterrupt:
        print(Colors.warning("\n⏹ 回放已停止"))
    finally:
        player.stop()
        scheduler.close()
    return 0


def build_demo_recording() -> SessionRecording:
    """用手动时钟生成一段演示录制"""
    clock = ManualClock(start=1_700_000_000_000)
    recorder = SessionRecorder(clock=clock)
    recorder.start(name="Demo Session", event_name="SignMate Demo", venue="Main Hall")

    lines = [
        ("hello everyone", ["HELLO", "ALL"]),
        ("welcome to the keynote", ["WELCOME", "KEYNOTE"]),
        ("thank you", ["THANK-YOU"]),
    ]
    for i, (text, glosses) in enumerate(lines):
        clock.advance(1500)
        if i == 1:
            recorder.add_marker("keynote", notes="Keynote begins")
        segment = TranscriptionSegment(id=f"seg-{i}", text=text, confidence=0.92, is_final=True)
        recorder.record_transcription(segment, latency=110 + 20 * i)

        clock.advance(200)
        signs = [ASLSign(gloss=gloss, duration=600) for gloss in glosses]
        recorder.record_translation(text, signs, [], latency=70 + 10 * i)

        for index, sign in enumerate(signs):
            recorder.record_sign_start(sign, index)
            clock.advance(sign.duration)
            recorder.record_sign_end(sign, index)

    clock.advance(1000)
    return recorder.stop()


def main() -> int:
    parser = argparse.ArgumentParser(description="SignMate 会话录制管理与回放工具")
    parser.add_argument("--dir", default=DEFAULT_RECORDINGS_DIR, help="录制目录")
    parser.add_argument("--list", action="store_true", help="列出所有会话")
    parser.add_argument("--info", metavar="SESSION", help="显示会话详情（ID 或文件路径）")
    parser.add_argument("--verify", metavar="SESSION", help="校验统计（ID 或文件路径）")
    parser.add_argument("--replay", metavar="SESSION", help="回放会话（ID 或文件路径）")
    parser.add_argument("--speed", type=float, default=1.0, help="回放速度 (0.25-4)")
    parser.add_argument("--marker", help="从指定标记开始回放")
    parser.add_argument("--demo", action="store_true", help="生成演示录制")
    parser.add_argument("--compress", action="store_true", help="保存时 gzip 压缩")
    parser.add_argument("--cleanup", action="store_true", help="清理旧会话")
    parser.add_argument("--keep", type=int, default=10, help="清理时保留的会话数")
    parser.add_argument("--debug", action="store_true", help="调试日志")
    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    manager = SessionManager(args.dir, compress=args.compress)

    if args.demo:
        path = manager.save(build_demo_recording())
        print(Colors.success(f"✓ 已生成演示录制: {path}"))
        return 0
    if args.list:
        return cmd_list(manager)
    if args.info:
        return cmd_info(resolve_recording(manager, args.info))
    if args.verify:
        return cmd_verify(resolve_recording(manager, args.verify))
    if args.replay:
        return cmd_replay(resolve_recording(manager, args.replay), args.speed, args.marker)
    if args.cleanup:
        deleted = manager.cleanup(keep_count=args.keep)
        print(Colors.success(f"✓ 已删除 {deleted} 个会话"))
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
