"""G-code reception and interpretation for the galvanometer SLS controller.

Lines arrive as a byte stream. ``GCodeReceiver`` splits them into a small
queue, and ``CommandProcessor`` turns each queued line into a ``MoveRequest``.
"""

from __future__ import annotations

import math
import re
from collections import deque
from dataclasses import dataclass, field

from .config import MachineConfig, preset

_FLOAT_RE = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)
_INT_RE = re.compile(r"\s*([+-]?\d+)")

_VERSIONS = ("1.5", "1.6", "1.7", "1.8")


def to_float(text):
    """Parse the leading number of text the way the firmware's String.toFloat does; 0.0 if none."""
    match = _FLOAT_RE.match(text)
    return float(match.group(1)) if match else 0.0


def to_int(text):
    """Parse the leading integer of text the way String.toInt does; 0 if none."""
    match = _INT_RE.match(text)
    return int(match.group(1)) if match else 0


def key_value(line, key):
    """Return the text after the first occurrence of key up to the next space, or None."""
    start = line.find(key)
    if start < 0:
        return None
    end = line.find(" ", start)
    return line[start + 1:] if end < 0 else line[start + 1:end]


def checksum(text):
    """XOR of every byte of text, as sent after '*' on a numbered line."""
    result = 0
    for char in text:
        result ^= ord(char) & 0xFF
    return result


class LineError(ValueError):
    """A numbered line was rejected; ``replies`` holds what the controller answers."""

    def __init__(self, reason, last_line, resend_prefix="Resend:"):
        super().__init__(reason)
        self.reason = reason
        self.last_line = last_line
        self.replies = [
            f"Error:{reason}, Last Line: {last_line}",
            f"{resend_prefix}{last_line + 1}",
            "ok",
        ]


@dataclass
class MoveRequest:
    """What one processed line asks the machine to do."""

    g: int | None = None
    m: int | None = None
    move_xy: bool = False
    laser: bool = False
    move_z: bool = False
    move_a: bool = False
    move_b: bool = False
    move_c: bool = False
    heating: bool | None = None
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    a: float = 0.0
    b: float = 0.0
    c: float = 0.0
    replies: list[str] = field(default_factory=list)


class GCodeReceiver:
    """Splits incoming characters into lines and queues up to buffer_size - 1 of them.

    Lines end at CR, LF or ':'. Text from ';' on is a comment; a line that
    carries a comment is dropped and comment mode lasts until an empty line
    ends it. With check_line_numbers, lines holding 'N' must count up by one
    and carry a '*' checksum; a rejected line discards all unread input.
    """

    def __init__(self, buffer_size=3, check_line_numbers=False):
        if buffer_size < 2:
            raise ValueError("buffer_size must be at least 2")
        self.capacity = buffer_size - 1
        self.check_line_numbers = check_line_numbers
        self.last_line = 0
        self._lines: deque[str] = deque()
        self._pending: deque[str] = deque()
        self._current = ""
        self._comment = False

    def feed(self, data=""):
        """Add incoming data, read as much as the queue allows, and return any replies."""
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("latin-1")
        self._pending.extend(data)
        replies: list[str] = []
        while self._pending and len(self._lines) < self.capacity:
            char = self._pending.popleft()
            if char in "\r\n" or (char == ":" and not self._comment):
                if not self._current:
                    self._comment = False
                    continue
                if not self._comment:
                    if self.check_line_numbers:
                        try:
                            self._check(self._current)
                        except LineError as err:
                            replies.extend(err.replies)
                            self._pending.clear()
                            self._current = ""
                            return replies
                    self._lines.append(self._current)
                self._current = ""
            else:
                if char == ";":
                    self._comment = True
                if not self._comment:
                    self._current += char
        return replies

    def _check(self, line):
        number_text = key_value(line, "N")
        if number_text is None:
            return
        if to_int(number_text) != self.last_line + 1:
            raise LineError(
                "Line Number is not Last Line Number+1", self.last_line, "Resend: "
            )
        star_text = key_value(line, "*")
        if star_text is None:
            raise LineError("No Checksum with line number", self.last_line)
        if to_int(star_text) != checksum(line[: line.index("*")]):
            raise LineError("checksum mismatch", self.last_line)
        self.last_line += 1

    def pop(self):
        """Remove and return the oldest queued line."""
        if not self._lines:
            raise IndexError("no command waiting")
        return self._lines.popleft()

    def __len__(self):
        return len(self._lines)


def _code(text):
    value = to_float(text)
    return int(value) if math.isfinite(value) else None


class CommandProcessor:
    """Interprets queued lines; axis targets persist from one line to the next."""

    def __init__(self, config: MachineConfig | None = None):
        self.config = config if config is not None else preset("1.8")
        if self.config.version not in _VERSIONS:
            raise ValueError(
                f"firmware {self.config.version} has no line-based command processor"
            )
        self.position = dict.fromkeys("XYZABC", 0.0)

    def _set(self, line, axis):
        text = key_value(line, axis)
        if text is None:
            return False
        self.position[axis] = to_float(text)
        return True

    def process(self, line):
        """Interpret one line and return the resulting request, ending with an "ok" reply."""
        version = self.config.version
        request = MoveRequest()
        g_text = key_value(line, "G")
        if g_text is not None:
            request.g = _code(g_text)
            if version == "1.5":
                if request.g in (0, 1):
                    self._set(line, "X")
                    self._set(line, "Y")
                request.move_xy = True
            elif request.g == 1:
                request.move_z = self._set(line, "Z")
                if self._set(line, "X"):
                    request.move_xy = True
                if self._set(line, "Y"):
                    request.move_xy = True
                elif self._set(line, "A"):
                    request.move_a = True
                elif self._set(line, "B"):
                    request.move_b = True
                elif self._set(line, "C"):
                    request.move_c = True
            elif request.g == 90 and version in ("1.7", "1.8"):
                request.replies.append("start")
            if key_value(line, "E") is not None:
                request.laser = True
        else:
            m_text = key_value(line, "M")
            if m_text is not None:
                request.m = _code(m_text)
                if request.m == 105 and version in ("1.5", "1.6"):
                    request.replies.append("start")
                elif request.m == 888 and version == "1.8":
                    request.heating = True
                elif request.m == 889 and version == "1.8":
                    request.heating = False
        request.replies.append("ok")
        pos = self.position
        request.x, request.y, request.z = pos["X"], pos["Y"], pos["Z"]
        request.a, request.b, request.c = pos["A"], pos["B"], pos["C"]
        return request