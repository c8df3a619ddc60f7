import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .diagnostics import DiagnosticSink
from .model import JavaThread, JavaThreadDump
from .parser import parse_jstack

logger = logging.getLogger(__name__)

MAX_STACK_DEPTH = 20
FRAME_PREFIX = "\tat "


def analyze_thread(thread: JavaThread) -> None:
    """Compute the stack fingerprint and depth from the ``\\tat`` frame lines only."""
    digest = hashlib.sha256()
    depth = 0
    for stack_line in thread.stack:
        if stack_line.startswith(FRAME_PREFIX):
            depth += 1
            digest.update(stack_line.encode("utf-8"))
    thread.stack_hash = digest.hexdigest()
    thread.stack_depth = depth


def summarize(dump: JavaThreadDump) -> int:
    """Fill the per-thread fields, aggregates and problems of ``dump``.

    Aggregates are rebuilt from scratch, so calling this twice gives the same
    result. Returns the number of problems found.
    """
    by_stack: Dict[str, int] = {}
    by_status: Dict[str, int] = {}
    lock_owners: Dict[str, str] = {}

    for thread in dump.threads.values():
        analyze_thread(thread)
        by_stack[thread.stack_hash] = by_stack.get(thread.stack_hash, 0) + 1
        by_status[thread.status] = by_status.get(thread.status, 0) + 1
        for lock in thread.locks_owned:
            # Two owners for one lock should not happen; the last one wins.
            lock_owners[lock] = thread.tid

    dump.by_stack = by_stack
    dump.by_status = by_status
    dump.lock_owners = lock_owners
    dump.total_threads = len(dump.threads)
    dump.problems = find_problems(dump)
    logger.debug(
        "Analyzed %d threads, %d problems.", dump.total_threads, len(dump.problems)
    )
    return len(dump.problems)


def find_problems(dump: JavaThreadDump) -> List[str]:
    """Run the problem rules over an analyzed dump. The result is sorted."""
    problems: List[str] = []
    for tid, thread in dump.threads.items():
        if thread.stack_depth is None:
            raise ValueError(f"thread {tid} has not been analyzed")
        if thread.status == "BLOCKED":
            for lock in thread.locks_waiting:
                owner_tid = dump.lock_owners.get(lock)
                if not owner_tid:
                    continue
                owner = dump.threads.get(owner_tid)
                owner_name = owner.name if owner else ""
                problems.append(
                    f"{thread.name}[{tid}] blocked for {owner_tid}[{owner_name}]. lock {lock}"
                )
        if thread.stack_depth > MAX_STACK_DEPTH and thread.status != "RUNNABLE":
            problems.append(
                f"{thread.name}[{tid}] waiting with stack depth {thread.stack_depth}."
            )
    problems.sort()
    return problems


def load_thread_dump(text: str, sink: Optional[DiagnosticSink] = None) -> JavaThreadDump:
    """Parse and analyze in one go."""
    dump = parse_jstack(text, sink=sink)
    summarize(dump)
    return dump


@dataclass
class DumpComparison:
    status_deltas: Dict[str, int]
    thread_delta: int
    problems_only_a: List[str] = field(default_factory=list)
    problems_only_b: List[str] = field(default_factory=list)
    problems_both: List[str] = field(default_factory=list)

    @property
    def changed_statuses(self) -> Dict[str, int]:
        return {s: d for s, d in self.status_deltas.items() if d != 0}


def compare_dumps(a: JavaThreadDump, b: JavaThreadDump) -> DumpComparison:
    """Compare two analyzed dumps, typically taken a few seconds apart."""
    statuses = sorted(set(a.by_status) | set(b.by_status))
    deltas = {s: b.by_status.get(s, 0) - a.by_status.get(s, 0) for s in statuses}
    problems_a = set(a.problems)
    problems_b = set(b.problems)
    return DumpComparison(
        status_deltas=deltas,
        thread_delta=b.total_threads - a.total_threads,
        problems_only_a=sorted(problems_a - problems_b),
        problems_only_b=sorted(problems_b - problems_a),
        problems_both=sorted(problems_a & problems_b),
    )
