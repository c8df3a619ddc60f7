import hashlib

import pytest

from conftest import make_dump, thread_block
from jstack_analyzer_mcp.analyzer import (
    MAX_STACK_DEPTH,
    analyze_thread,
    compare_dumps,
    find_problems,
    load_thread_dump,
    summarize,
)
from jstack_analyzer_mcp.model import JavaThread
from jstack_analyzer_mcp.parser import parse_jstack


def test_analyze_thread_counts_only_frames():
    thread = JavaThread(stack=[
        "\tat a.B.c(B.java:1)",
        "\t- locked <0x1> (a java.lang.Object)",
        "\tat a.B.d(B.java:2)",
        "\t- waiting on <0x2> (a java.lang.Object)",
    ])
    analyze_thread(thread)

    expected = hashlib.sha256()
    expected.update(b"\tat a.B.c(B.java:1)")
    expected.update(b"\tat a.B.d(B.java:2)")
    assert thread.stack_depth == 2
    assert thread.stack_hash == expected.hexdigest()


def test_fingerprint_ignores_lock_annotations():
    plain = JavaThread(stack=["\tat a.B.c(B.java:1)", "\tat a.B.d(B.java:2)"])
    annotated = JavaThread(stack=[
        "\tat a.B.c(B.java:1)",
        "\t- locked <0x99> (a java.lang.Object)",
        "\tat a.B.d(B.java:2)",
    ])
    analyze_thread(plain)
    analyze_thread(annotated)

    assert plain.stack_hash == annotated.stack_hash
    assert plain.stack_depth == annotated.stack_depth == 2


def test_empty_stack_has_depth_zero():
    thread = JavaThread()
    analyze_thread(thread)

    assert thread.stack_depth == 0
    assert thread.stack_hash == hashlib.sha256().hexdigest()


def test_summarize_sample(sample_dump_text):
    dump = parse_jstack(sample_dump_text)
    count = summarize(dump)

    assert count == 3
    assert dump.problems == [
        "Thread-1[0x00007f1234567a00] blocked for 0x00007f1234567b00[Thread-2]. lock 0x00000000e1234567",
        "Thread-2[0x00007f1234567b00] blocked for 0x00007f1234567a00[Thread-1]. lock 0x00000000e7654321",
        "deep-worker[0x00007f1234567e00] waiting with stack depth 22.",
    ]
    assert dump.by_status == {"RUNNABLE": 1, "BLOCKED": 2, "TIMED_WAITING": 2, "WAITING": 1}
    assert dump.lock_owners == {
        "0x00000000e7654321": "0x00007f1234567a00",
        "0x00000000e1234567": "0x00007f1234567b00",
    }
    pool_hash = dump.threads["0x00007f1234567c00"].stack_hash
    assert pool_hash == dump.threads["0x00007f1234567d00"].stack_hash
    assert dump.by_stack[pool_hash] == 2
    assert len(dump.by_stack) == 5
    assert sum(dump.by_stack.values()) == dump.total_threads == 6


def test_blocked_on_owned_lock(blocked_on_owned_lock_dump):
    dump = load_thread_dump(blocked_on_owned_lock_dump)

    assert dump.problems == [
        "blocked-thread[0x0000000000000a01] blocked for 0x0000000000000a02[owner-thread]. lock 0x1"
    ]


def test_waiting_lock_without_owner_is_not_a_problem():
    text = make_dump(
        thread_block(
            "lonely", "0x01", "0x01", "BLOCKED",
            frames=["x.A.a(A.java:1)"],
            extra=["\t- waiting to lock <0x77> (a java.lang.Object)"],
        ),
    )
    dump = load_thread_dump(text)

    assert dump.problems == []


def test_only_blocked_status_triggers_lock_rule():
    text = make_dump(
        thread_block(
            "waiter", "0x01", "0x01", "WAITING",
            extra=["\t- waiting to lock <0x5> (a java.lang.Object)"],
        ),
        thread_block("owner", "0x02", "0x02", "RUNNABLE", extra=["\t- locked <0x5> (a java.lang.Object)"]),
    )
    dump = load_thread_dump(text)

    assert dump.problems == []


def test_deep_waiting_thread_reported(deep_stack_frames):
    text = make_dump(thread_block("deep", "0x01", "0x01", "WAITING", frames=deep_stack_frames))
    dump = load_thread_dump(text)

    assert dump.problems == ["deep[0x01] waiting with stack depth 25."]


def test_deep_runnable_thread_not_reported(deep_stack_frames):
    text = make_dump(thread_block("deep", "0x01", "0x01", "RUNNABLE", frames=deep_stack_frames))
    dump = load_thread_dump(text)

    assert dump.problems == []


def test_depth_threshold_is_exclusive():
    frames = [f"x.A.a{i}(A.java:{i})" for i in range(MAX_STACK_DEPTH)]
    text = make_dump(thread_block("edge", "0x01", "0x01", "TIMED_WAITING", frames=frames))
    dump = load_thread_dump(text)

    assert dump.threads["0x01"].stack_depth == MAX_STACK_DEPTH
    assert dump.problems == []


def test_summarize_is_idempotent(sample_dump_text):
    dump = parse_jstack(sample_dump_text)
    summarize(dump)
    first = (dict(dump.by_stack), dict(dump.by_status), dict(dump.lock_owners), list(dump.problems))

    count = summarize(dump)

    assert count == len(first[3])
    assert (dump.by_stack, dump.by_status, dump.lock_owners, dump.problems) == first


def test_last_lock_owner_wins():
    text = make_dump(
        thread_block("first", "0x01", "0x01", "RUNNABLE", extra=["\t- locked <0x5> (a x.A)"]),
        thread_block("second", "0x02", "0x02", "RUNNABLE", extra=["\t- locked <0x5> (a x.A)"]),
    )
    dump = load_thread_dump(text)

    assert dump.lock_owners["0x5"] == "0x02"
    assert len(dump.lock_owners) == 1


def test_find_problems_requires_analysis(sample_dump_text):
    dump = parse_jstack(sample_dump_text)

    with pytest.raises(ValueError):
        find_problems(dump)


def test_problems_are_sorted():
    text = make_dump(
        thread_block("zeta", "0x01", "0x01", "WAITING", frames=[f"z.Z.z{i}(Z.java:1)" for i in range(21)]),
        thread_block("alpha", "0x02", "0x02", "WAITING", frames=[f"a.A.a{i}(A.java:1)" for i in range(30)]),
    )
    dump = load_thread_dump(text)

    assert dump.problems == sorted(dump.problems)
    assert dump.problems[0].startswith("alpha[0x02]")


def test_compare_dumps(sample_dump_text, sample_dump_text_2):
    a = load_thread_dump(sample_dump_text)
    b = load_thread_dump(sample_dump_text_2)
    comparison = compare_dumps(a, b)

    assert comparison.status_deltas == {"BLOCKED": -1, "RUNNABLE": 2, "TIMED_WAITING": 0, "WAITING": -1}
    assert comparison.changed_statuses == {"BLOCKED": -1, "RUNNABLE": 2, "WAITING": -1}
    assert comparison.thread_delta == 0
    assert len(comparison.problems_only_a) == 3
    assert comparison.problems_only_b == [
        "Thread-3[0x00007f1234567f00] blocked for 0x00007f1234568000[Thread-4]. lock 0x00000000e5555555"
    ]
    assert comparison.problems_both == []
