import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class JavaThread:
    """A single thread block of a jstack dump.

    ``stack_hash`` and ``stack_depth`` stay ``None`` until
    ``analyzer.analyze_thread`` has run on the thread.
    """

    name: str = ""
    internal_number: str = ""
    is_daemon: bool = False
    status: str = ""
    prio: int = 0
    os_prio: int = 0
    thread_id: int = 0
    tid: str = ""
    nid: str = ""
    stack: List[str] = field(default_factory=list)
    stack_hash: Optional[str] = None
    stack_depth: Optional[int] = None
    locks_owned: List[str] = field(default_factory=list)
    locks_waiting: List[str] = field(default_factory=list)

    def add_owned_lock(self, lock: str) -> None:
        if lock not in self.locks_owned:
            self.locks_owned.append(lock)

    def add_waiting_lock(self, lock: str) -> None:
        if lock not in self.locks_waiting:
            self.locks_waiting.append(lock)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "internalNumber": self.internal_number,
            "isDaemon": self.is_daemon,
            "status": self.status,
            "prio": self.prio,
            "osPrio": self.os_prio,
            "threadId": self.thread_id,
            "tid": self.tid,
            "nid": self.nid,
            "stack": list(self.stack),
            "stackHash": self.stack_hash,
            "stackDepth": self.stack_depth,
            "locksOwned": list(self.locks_owned),
            "locksWaiting": list(self.locks_waiting),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "JavaThread":
        return JavaThread(
            name=data.get("name", ""),
            internal_number=data.get("internalNumber", ""),
            is_daemon=data.get("isDaemon", False),
            status=data.get("status", ""),
            prio=data.get("prio", 0),
            os_prio=data.get("osPrio", 0),
            thread_id=data.get("threadId", 0),
            tid=data.get("tid", ""),
            nid=data.get("nid", ""),
            stack=list(data.get("stack") or []),
            stack_hash=data.get("stackHash"),
            stack_depth=data.get("stackDepth"),
            locks_owned=list(data.get("locksOwned") or []),
            locks_waiting=list(data.get("locksWaiting") or []),
        )

    def to_json(self) -> str:
        # analyzer imports this module, so import it lazily.
        from .analyzer import analyze_thread

        analyze_thread(self)
        return json.dumps(self.to_dict(), indent="\t", ensure_ascii=False)


@dataclass
class JavaThreadDump:
    """Everything parsed and derived from one jstack output."""

    date: str = ""
    version_string: str = ""
    threads: Dict[str, JavaThread] = field(default_factory=dict)
    by_stack: Dict[str, int] = field(default_factory=dict)
    by_status: Dict[str, int] = field(default_factory=dict)
    lock_owners: Dict[str, str] = field(default_factory=dict)
    total_threads: int = 0
    problems: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "versionString": self.version_string,
            "byStack": _sorted_map(self.by_stack),
            "byStatus": _sorted_map(self.by_status),
            "lockOwners": _sorted_map(self.lock_owners),
            "threads": {tid: self.threads[tid].to_dict() for tid in sorted(self.threads)},
            "totalThreads": self.total_threads,
            "problems": list(self.problems),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "JavaThreadDump":
        threads = {
            tid: JavaThread.from_dict(raw)
            for tid, raw in (data.get("threads") or {}).items()
        }
        return JavaThreadDump(
            date=data.get("date", ""),
            version_string=data.get("versionString", ""),
            threads=threads,
            by_stack=dict(data.get("byStack") or {}),
            by_status=dict(data.get("byStatus") or {}),
            lock_owners=dict(data.get("lockOwners") or {}),
            total_threads=data.get("totalThreads", len(threads)),
            problems=list(data.get("problems") or []),
        )

    def to_json(self) -> str:
        """Pretty, tab indented JSON. Map keys are sorted so output is stable."""
        return json.dumps(self.to_dict(), indent="\t", ensure_ascii=False)

    def to_bytes(self) -> bytes:
        return self.to_json().encode("utf-8")

    @staticmethod
    def from_json(text) -> "JavaThreadDump":
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        return JavaThreadDump.from_dict(json.loads(text))


def _sorted_map(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: values[k] for k in sorted(values)}
