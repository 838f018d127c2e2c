"""
Incremental demuxer for concatenated JSON values.

The gateway writes one JSON object per provider event with no delimiter
between them, and HTTP chunk boundaries fall anywhere: mid-value, mid-string,
even inside a multi-byte UTF-8 character. The demuxer tracks brace depth
across chunks and hands back each top-level object as soon as its closing
brace arrives.

Example:
    demuxer = JsonStreamDemuxer()
    demuxer.feed(b'{"a":1}{"b"')   # ['{"a":1}']
    demuxer.feed(b':2}')           # ['{"b":2}']
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

logger = logging.getLogger(__name__)


class JsonStreamDemuxer:
    """
    Brace-depth scanner over an unbounded chunk stream.

    Braces inside string literals (including escaped quotes) do not count
    toward depth. Text between top-level objects is ignored. Input that has
    been scanned and is not part of an in-progress object is discarded.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._scan_pos = 0
        self._depth = 0
        self._in_string = False
        self._escaped = False

    @property
    def pending(self) -> str:
        """Text of the object currently being assembled, if any"""
        return self._buffer if self._depth else ""

    def feed(self, chunk: bytes | str) -> list[str]:
        """Consume one chunk and return the raw text of every object it completed"""
        text = self._decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
        if not text:
            return []

        self._buffer += text
        buffer = self._buffer
        frames = []
        start = 0 if self._depth else None

        for i in range(self._scan_pos, len(buffer)):
            ch = buffer[i]
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif ch == "\\":
                    self._escaped = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"':
                # Quotes only open strings inside an object
                if self._depth:
                    self._in_string = True
            elif ch == "{":
                if self._depth == 0:
                    start = i
                self._depth += 1
            elif ch == "}" and self._depth:
                self._depth -= 1
                if self._depth == 0:
                    frames.append(buffer[start : i + 1])
                    start = None

        if start is None:
            self._buffer = ""
            self._scan_pos = 0
        else:
            self._buffer = buffer[start:]
            self._scan_pos = len(self._buffer)

        return frames

    def close(self) -> list[str]:
        """Flush the decoder at end of stream; an unterminated object is dropped"""
        frames = self.feed(self._decoder.decode(b"", final=True))
        if self._depth:
            logger.warning(f"Stream ended inside an unterminated value ({len(self._buffer)} chars)")
            self._buffer = ""
            self._scan_pos = 0
            self._depth = 0
            self._in_string = False
            self._escaped = False
        return frames


async def iter_json_frames(chunks: AsyncIterable[bytes | str]) -> AsyncIterator[str]:
    """Yield the raw text of each top-level object as soon as it is complete"""
    demuxer = JsonStreamDemuxer()
    async for chunk in chunks:
        for frame in demuxer.feed(chunk):
            yield frame
    for frame in demuxer.close():
        yield frame


async def iter_json_values(chunks: AsyncIterable[bytes | str]) -> AsyncIterator[Any]:
    """
    Yield each decoded object.

    A frame that balances but is not valid JSON is logged and skipped; later
    frames are unaffected.
    """
    async for frame in iter_json_frames(chunks):
        try:
            yield json.loads(frame)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping malformed frame: {e}")
