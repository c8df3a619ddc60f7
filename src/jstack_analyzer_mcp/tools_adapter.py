import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from .analyzer import compare_dumps, load_thread_dump
from .config import Settings, get_settings
from .errors import InvalidFormat

logger = logging.getLogger(__name__)

DIFF_MODES = ("summary", "states", "full")


@dataclass
class Result:
    ok: bool
    text: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @staticmethod
    def ok_text(payload: Dict) -> "Result":
        return Result(ok=True, text=json.dumps(payload, indent="\t"))

    @staticmethod
    def ok_json(text: str) -> "Result":
        return Result(ok=True, text=text)

    @staticmethod
    def err(code: str, message: str) -> "Result":
        return Result(ok=False, error_code=code, error_message=message)


class DumpFileError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def read_dump_file(path: str, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    if not isinstance(path, str) or not path:
        raise DumpFileError("INVALID_PARAMS", "path must be a non-empty string")
    if not os.path.exists(path):
        raise DumpFileError("INVALID_PARAMS", f"File not found: {path}")
    if os.path.isdir(path):
        raise DumpFileError("INVALID_PARAMS", f"Path is a directory: {path}")
    if os.path.getsize(path) > settings.max_file_bytes:
        raise DumpFileError("INTERNAL_ERROR", f"File too large (>{settings.max_file_bytes} bytes): {path}")

    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


# Shared by the MCP server in __main__.py; no MCP types here so it can be tested directly.

def analyze_tool_call(
    path: str,
    problems_only: bool = False,
    settings: Optional[Settings] = None,
) -> Result:
    try:
        text = read_dump_file(path, settings)
    except DumpFileError as e:
        return Result.err(e.code, e.message)

    try:
        dump = load_thread_dump(text)
    except InvalidFormat as e:
        return Result.err("INVALID_PARAMS", f"{path}: {e}")
    except Exception as e:  # pragma: no cover - defensive parity
        logger.exception("Failed to analyze %s", path)
        return Result.err("INTERNAL_ERROR", f"Exception: {e}")

    logger.info("Analyzed %s: %d threads, %d problems", path, dump.total_threads, len(dump.problems))
    if problems_only:
        return Result.ok_text({
            "totalThreads": dump.total_threads,
            "byStatus": dict(sorted(dump.by_status.items())),
            "problems": dump.problems,
        })
    return Result.ok_json(dump.to_json())


def compare_tool_call(
    path_a: str,
    path_b: str,
    diff_mode: str = "full",
    settings: Optional[Settings] = None,
) -> Result:
    if diff_mode not in DIFF_MODES:
        return Result.err("INVALID_PARAMS", "'diff_mode' must be one of: summary|states|full")

    try:
        text_a = read_dump_file(path_a, settings)
        text_b = read_dump_file(path_b, settings)
    except DumpFileError as e:
        return Result.err(e.code, e.message)

    try:
        a = load_thread_dump(text_a)
        b = load_thread_dump(text_b)
    except InvalidFormat as e:
        return Result.err("INVALID_PARAMS", str(e))
    except Exception as e:  # pragma: no cover - defensive parity
        logger.exception("Failed to compare %s and %s", path_a, path_b)
        return Result.err("INTERNAL_ERROR", f"Exception: {e}")

    comparison = compare_dumps(a, b)

    def make_summary() -> str:
        changes = ", ".join(f"{s}={d:+d}" for s, d in comparison.changed_statuses.items()) or "no changes"
        parts = [f"Threads {comparison.thread_delta:+d}", "State deltas: " + changes]
        if comparison.problems_only_a:
            parts.append(f"{len(comparison.problems_only_a)} problems only in A")
        if comparison.problems_only_b:
            parts.append(f"{len(comparison.problems_only_b)} problems only in B")
        if comparison.problems_both:
            parts.append(f"{len(comparison.problems_both)} problems in both")
        return "; ".join(parts)

    if diff_mode == "summary":
        payload: Dict[str, object] = {"summary": make_summary()}
    elif diff_mode == "states":
        payload = {
            "summary": make_summary(),
            "byStatusA": dict(sorted(a.by_status.items())),
            "byStatusB": dict(sorted(b.by_status.items())),
            "deltas": comparison.status_deltas,
        }
    else:
        payload = {
            "summary": make_summary(),
            "byStatusA": dict(sorted(a.by_status.items())),
            "byStatusB": dict(sorted(b.by_status.items())),
            "deltas": comparison.status_deltas,
            "threadDelta": comparison.thread_delta,
            "problemsOnlyA": comparison.problems_only_a,
            "problemsOnlyB": comparison.problems_only_b,
            "problemsBoth": comparison.problems_both,
        }
    return Result.ok_text(payload)
