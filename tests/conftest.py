from pathlib import Path

import pytest

BASE_DIR = Path(__file__).parent


def make_dump(*thread_blocks: str) -> str:
    header = (
        "2024-01-15 10:30:45\n"
        "Full thread dump OpenJDK 64-Bit Server VM (17.0.1+12 mixed mode):\n"
        "\n"
    )
    return header + "\n".join(thread_blocks)


def thread_block(name, tid, nid, state, frames=(), extra=(), daemon=False):
    daemon_flag = " daemon" if daemon else ""
    lines = [
        f'"{name}" #10{daemon_flag} prio=5 os_prio=0 tid={tid} nid={nid} waiting on condition',
        f"   java.lang.Thread.State: {state}",
    ]
    lines.extend(f"\tat {frame}" for frame in frames)
    lines.extend(extra)
    return "\n".join(lines) + "\n"


@pytest.fixture
def sample_dump_text():
    return (BASE_DIR / "sample_thread_dump.txt").read_text(encoding="utf-8")


@pytest.fixture
def sample_dump_text_2():
    return (BASE_DIR / "sample_thread_dump_2.txt").read_text(encoding="utf-8")


@pytest.fixture
def blocked_on_owned_lock_dump():
    """One BLOCKED thread waiting for 0x1, held by a RUNNABLE thread."""
    return make_dump(
        thread_block(
            "blocked-thread", "0x0000000000000a01", "0x11", "BLOCKED (on object monitor)",
            frames=["com.example.A.run(A.java:1)"],
            extra=["\t- waiting to lock <0x1> (a java.lang.Object)"],
        ),
        thread_block(
            "owner-thread", "0x0000000000000a02", "0x12", "RUNNABLE",
            frames=["com.example.B.run(B.java:1)"],
            extra=["\t- locked <0x1> (a java.lang.Object)"],
        ),
    )


@pytest.fixture
def deep_stack_frames():
    return [f"com.example.Deep.level{i}(Deep.java:{i})" for i in range(25)]
