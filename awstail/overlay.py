"""
Interactive filter overlay for tail mode.

Keystrokes edit a live pattern; lines whose raw message does not contain it
(case-insensitive) are printed dimmed instead of hidden. A one-line status sits
under the scrolling output and is erased before, and redrawn after, every batch.

Everything here runs on the event-loop thread: the key reader is registered
with loop.add_reader, so a keystroke is handled to completion between renders.
"""
from __future__ import annotations
import asyncio
import codecs
import contextlib
import datetime
import os
import re
import termios
import tty
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, TextIO

from .config import log
from .events import LogEvent
from .formatting import DIM, GRAY, RESET, YELLOW, format_log_entry, strip_ansi

ERASE_LINE = "\r\x1b[K"
CTRL_C = "\x03"
ESCAPE = "\x1b"
BACKSPACE = ("\x7f", "\x08")
# CSI (ESC [ ... final) and SS3 (ESC O x) key sequences: arrows, function keys
KEY_SEQUENCE_RE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|O.)")


@dataclass
class FilterState:
    pattern: str = ""

    @property
    def active(self) -> bool:
        return bool(self.pattern)

    def append(self, ch: str) -> None:
        self.pattern += ch

    def backspace(self) -> None:
        self.pattern = self.pattern[:-1]

    def clear(self) -> None:
        self.pattern = ""


def handle_input(state: FilterState, chunk: str) -> bool:
    """
    Apply one read's worth of keystrokes. Returns True if Ctrl-C was pressed.
    """
    i = 0
    while i < len(chunk):
        ch = chunk[i]
        if ch == ESCAPE:
            seq = KEY_SEQUENCE_RE.match(chunk, i)
            if seq:
                i = seq.end()
                continue
            state.clear()
        elif ch == CTRL_C:
            return True
        elif ch in BACKSPACE:
            state.backspace()
        elif ch.isprintable():
            state.append(ch)
        i += 1
    return False


def should_dim(state: FilterState, message: str) -> bool:
    return state.active and bool(state.pattern) and state.pattern.lower() not in message.lower()


def dim_line(line: str) -> str:
    return f"{DIM}{GRAY}{strip_ansi(line)}{RESET}"


class Renderer:
    """
    Writes formatted events to `out`. With interactive=True it also owns the
    status line and applies the filter to every line at print time.
    """
    def __init__(self, out: TextIO, state: Optional[FilterState] = None, interactive: bool = False):
        self.out = out
        self.state = state or FilterState()
        self.interactive = interactive
        self.fetched_at: Optional[datetime.datetime] = None

    def line_for(self, event: LogEvent) -> str:
        line = format_log_entry(event.timestamp, event.message)
        if self.interactive and should_dim(self.state, event.message):
            return dim_line(line)
        return line

    def render(self, events: Iterable[LogEvent]) -> None:
        if self.interactive:
            self.erase_status()
        for event in events:
            self.out.write(self.line_for(event) + "\n")
        if self.interactive:
            self.status()
        self.out.flush()

    def notice(self, text: str) -> None:
        self.out.write(f"{DIM}{text}{RESET}\n")
        self.out.flush()

    def erase_status(self) -> None:
        self.out.write(ERASE_LINE)

    def status_text(self) -> str:
        stamp = self.fetched_at.strftime("%H:%M:%S") if self.fetched_at else "--:--:--"
        text = f"{GRAY}{DIM}Last fetch at {stamp}...{RESET}"
        if self.state.active:
            text += f"  {YELLOW}filter: {self.state.pattern}{RESET}{GRAY}{DIM}  (esc clears){RESET}"
        return text

    def status(self, fetched_at: Optional[datetime.datetime] = None) -> None:
        if fetched_at is not None:
            self.fetched_at = fetched_at
        self.out.write(ERASE_LINE + self.status_text())
        self.out.flush()


@contextlib.contextmanager
def raw_keys(
    fd: int,
    on_keys: Callable[[str], None],
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Iterator[None]:
    """
    Put the terminal on `fd` into cbreak mode and feed keystrokes to on_keys.

    The saved terminal attributes are restored and the reader removed on any
    exit, including cancellation.
    """
    loop = loop or asyncio.get_running_loop()
    saved = termios.tcgetattr(fd)
    # a multi-byte character may be split across reads
    decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")

    def _on_readable() -> None:
        data = os.read(fd, 64)
        if data:
            text = decoder.decode(data)
            if text:
                on_keys(text)

    tty.setcbreak(fd)
    loop.add_reader(fd, _on_readable)
    log.debug("[filter] key listener attached")
    try:
        yield
    finally:
        loop.remove_reader(fd)
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        log.debug("[filter] terminal restored")
