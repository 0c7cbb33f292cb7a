"""
Incremental parser for the sync event stream.

Turns arbitrarily fragmented network chunks into SSE frames:

    bytes chunks -> LineReassembler -> lines
    lines -> classify_line -> ClassifiedLine(kind, value)
    classified lines -> FrameAssembler -> Frame(event, data)

Only ``event:`` and ``data:`` fields are understood. Comments, ``id:``,
``retry:`` and unknown fields are classified as OTHER and skipped.
"""

import codecs
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterable, AsyncIterator, List, NamedTuple, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Line Reassembler
# =============================================================================

class LineReassembler:
    """
    Reassembles text lines from byte chunks.

    Decoding is stateful, so a multi-byte character split across two chunks
    is decoded once both halves have arrived. A line ends at ``\\n``; one
    ``\\r`` immediately before it is dropped. Anything after the last
    ``\\n`` is carried over to the next ``feed()``.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received but not yet terminated by a newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> List[str]:
        """Decode a chunk and return every line it completes."""
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def finish(self) -> List[str]:
        """
        Flush at end of stream.

        Returns the remaining complete lines plus, if text is left over,
        one final unterminated line.
        """
        self._buffer += self._decoder.decode(b"", final=True)
        lines = self._drain()
        if self._buffer:
            lines.append(_strip_cr(self._buffer))
            self._buffer = ""
        return lines

    def reset(self) -> None:
        """Discard buffered text and decoder state."""
        self._decoder.reset()
        self._buffer = ""

    def _drain(self) -> List[str]:
        lines = []
        start = 0
        while True:
            end = self._buffer.find("\n", start)
            if end == -1:
                break
            lines.append(_strip_cr(self._buffer[start:end]))
            start = end + 1
        if start:
            self._buffer = self._buffer[start:]
        return lines


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


# =============================================================================
# Line Classification
# =============================================================================

class LineKind(str, Enum):
    """Kinds of lines in the event stream."""
    EVENT = "event"
    DATA = "data"
    BLANK = "blank"
    OTHER = "other"


class ClassifiedLine(NamedTuple):
    kind: LineKind
    value: str = ""


def _field_value(line: str, prefix: str) -> str:
    value = line[len(prefix):]
    # At most one space after the colon belongs to the syntax
    if value.startswith(" "):
        value = value[1:]
    return value


def classify_line(line: str) -> ClassifiedLine:
    """
    Classify one line of the stream.

    Examples:
        "event: progress" -> (EVENT, "progress")
        "data:{}"         -> (DATA, "{}")
        ""                -> (BLANK, "")
        ": keep-alive"    -> (OTHER, ": keep-alive")
    """
    if not line:
        return ClassifiedLine(LineKind.BLANK)
    if line.startswith("data:"):
        return ClassifiedLine(LineKind.DATA, _field_value(line, "data:"))
    if line.startswith("event:"):
        return ClassifiedLine(LineKind.EVENT, _field_value(line, "event:"))
    return ClassifiedLine(LineKind.OTHER, line)


# =============================================================================
# Frame Assembler
# =============================================================================

@dataclass(frozen=True)
class Frame:
    """
    One complete event.

    ``event`` is None when the frame carried no ``event:`` line (the SSE
    default type, ``message``). ``data`` is every ``data:`` value joined
    with ``\\n`` in the order received.
    """
    event: Optional[str]
    data: str


class FrameAssembler:
    """
    Groups lines into frames.

    A blank line closes the pending frame. The pending event name and data
    lines survive across ``feed()`` calls, so a frame may span any number of
    chunks.
    """

    def __init__(self):
        self._event: Optional[str] = None
        self._data: List[str] = []

    @property
    def has_pending(self) -> bool:
        return self._event is not None or bool(self._data)

    def feed(self, line: str) -> Optional[Frame]:
        """Consume one line; return a frame when the line completes one."""
        kind, value = classify_line(line)

        if kind is LineKind.EVENT:
            self._event = value
        elif kind is LineKind.DATA:
            self._data.append(value)
        elif kind is LineKind.BLANK:
            return self._emit()
        else:
            logger.debug(f"Ignoring stream line: {line!r}")
        return None

    def flush(self) -> Optional[Frame]:
        """End of stream: emit the frame left open by a missing blank line."""
        return self._emit()

    def reset(self) -> None:
        self._event = None
        self._data = []

    def _emit(self) -> Optional[Frame]:
        if not self.has_pending:
            return None
        frame = Frame(event=self._event, data="\n".join(self._data))
        self.reset()
        return frame


# =============================================================================
# Stream Parser
# =============================================================================

class SSEStreamParser:
    """
    Chunk-to-frame parser for one stream.

    Usage:
        parser = SSEStreamParser()
        for chunk in chunks:
            for frame in parser.feed(chunk):
                handle(frame)
        for frame in parser.finish():
            handle(frame)
    """

    def __init__(self):
        self.lines = LineReassembler()
        self.frames = FrameAssembler()

    def feed(self, chunk: bytes) -> List[Frame]:
        """Return the frames completed by this chunk, in stream order."""
        return self._assemble(self.lines.feed(chunk))

    def finish(self) -> List[Frame]:
        """Return the frames completed by the end of the stream."""
        frames = self._assemble(self.lines.finish())
        trailing = self.frames.flush()
        if trailing is not None:
            frames.append(trailing)
        return frames

    def reset(self) -> None:
        self.lines.reset()
        self.frames.reset()

    def _assemble(self, lines: List[str]) -> List[Frame]:
        frames = []
        for line in lines:
            frame = self.frames.feed(line)
            if frame is not None:
                frames.append(frame)
        return frames


async def iter_frames(chunks: AsyncIterable[bytes]) -> AsyncIterator[Frame]:
    """Parse a whole byte stream, yielding frames as soon as they complete."""
    parser = SSEStreamParser()
    async for chunk in chunks:
        for frame in parser.feed(chunk):
            yield frame
    for frame in parser.finish():
        yield frame
