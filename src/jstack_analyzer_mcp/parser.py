import logging
import re
from typing import Optional

from .diagnostics import DiagnosticSink, LoggingSink
from .errors import InvalidFormat, MalformedLine
from .model import JavaThread, JavaThreadDump

# This module has no MCP dependencies so it can be used without the server runtime.

logger = logging.getLogger(__name__)

DUMP_MARKER = "Full thread dump "
STATE_PREFIX = "   java.lang.Thread.State:"
LOCKED_PREFIX = "\t- locked "
WAITING_PREFIX = "\t- waiting to lock "

# "main" #1 daemon prio=5 os_prio=0 tid=0x00007f... nid=0x1a2b runnable
THREAD_HEADER_RE = re.compile(
    r'"(?P<name>[^"]+)"'
    r' (?P<number>#[0-9]+)'
    r'(?P<daemon> daemon)?'
    r' prio=(?P<prio>[0-9]+)?'
    r' os_prio=(?P<os_prio>[0-9]+)'
    r' tid=(?P<tid>[a-z0-9]+)'
    r' nid=(?P<nid>[a-z0-9]+)'
    r' (?P<status>[^$]*)'
)
STATE_RE = re.compile(r'[ ]+java\.lang\.Thread\.State: (?P<state>[^ ]*)')
LOCKED_RE = re.compile(r'\t+- locked <(?P<lock>[^>]+)>')
WAITING_RE = re.compile(r'\t+- waiting to lock <(?P<lock>[^>]+)>')


def parse_jstack(text: str, sink: Optional[DiagnosticSink] = None) -> JavaThreadDump:
    """Parse jstack output into a JavaThreadDump.

    Aggregates and problems are left empty; run ``analyzer.summarize`` on the
    result to fill them. Raises InvalidFormat when the input never contains a
    "Full thread dump" line.
    """
    sink = sink or LoggingSink()
    dump = JavaThreadDump()
    valid = False
    current = JavaThread()

    for i, line in enumerate(text.split("\n")):
        if line.endswith("\r"):
            line = line[:-1]
        if i == 0:
            dump.date = line
        elif line.startswith(DUMP_MARKER):
            valid = True
            dump.version_string = line[len(DUMP_MARKER):]
        elif not valid:
            continue
        elif line.startswith('"'):
            if current.name:
                current = JavaThread()
            _parse_header(line, i, current, dump, sink)
        elif line.startswith(STATE_PREFIX):
            m_state = STATE_RE.match(line)
            if m_state:
                current.status = m_state.group("state")
        elif line.startswith("\t"):
            current.stack.append(line)
            try:
                _parse_lock(line, i, current)
            except MalformedLine as e:
                sink.report(logging.ERROR, str(e))

    if not valid:
        raise InvalidFormat("couldn't find a valid java jstack output", dump=dump)

    dump.total_threads = len(dump.threads)
    logger.debug("Finished parsing %d threads.", dump.total_threads)
    return dump


def _parse_header(
    line: str,
    line_number: int,
    thread: JavaThread,
    dump: JavaThreadDump,
    sink: DiagnosticSink,
) -> None:
    m_header = THREAD_HEADER_RE.match(line)
    if not m_header:
        # Header variants we do not understand are skipped without a record.
        return

    thread.name = m_header.group("name")
    thread.internal_number = m_header.group("number")
    thread.is_daemon = m_header.group("daemon") is not None
    thread.prio = int(m_header.group("prio") or 0)
    thread.os_prio = int(m_header.group("os_prio"))
    thread.tid = m_header.group("tid")
    thread.nid = m_header.group("nid")
    thread.status = m_header.group("status")
    try:
        thread.thread_id = int(thread.nid[2:], 16)
    except ValueError:
        thread.thread_id = 0
        sink.report(
            logging.WARNING,
            str(MalformedLine("nid is not hexadecimal:", line_number, thread.nid)),
        )
    dump.threads[thread.tid] = thread


def _parse_lock(line: str, line_number: int, thread: JavaThread) -> None:
    if line.startswith(LOCKED_PREFIX):
        m_lock = LOCKED_RE.match(line)
        if not m_lock:
            raise MalformedLine("Failed to find lock ID.", line_number, line)
        thread.add_owned_lock(m_lock.group("lock"))
    elif line.startswith(WAITING_PREFIX):
        m_lock = WAITING_RE.match(line)
        if not m_lock:
            raise MalformedLine("Failed to find wait lock ID.", line_number, line)
        thread.add_waiting_lock(m_lock.group("lock"))
