"""SSE (Server-Sent Events) framing for upstream streams."""

import codecs
from typing import Optional


DONE_SENTINEL = "[DONE]"


class SSEDecoder:
    """Re-frame raw network reads into whole SSE frames.

    Reads from the backend can split a frame anywhere, or carry several frames
    at once. ``feed`` buffers partial input and returns every complete frame
    including its terminating blank line.

    Frames are returned with line endings normalized: CRLF and lone CR become
    LF. A backend that already uses LF gets its frames back byte for byte;
    CRLF frames come back in their LF form. Invalid UTF-8 is replaced with
    U+FFFD.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[bytes]:
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        # A trailing \r may be the first half of a \r\n split across reads
        held = "\r" if self._buffer.endswith("\r") else ""
        if held:
            self._buffer = self._buffer[:-1]
        self._buffer = self._buffer.replace("\r\n", "\n").replace("\r", "\n")
        frames: list[bytes] = []

        while True:
            sep_index = self._buffer.find("\n\n")
            if sep_index == -1:
                break
            raw_frame = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + 2:]
            if not raw_frame.strip():
                continue
            frames.append(f"{raw_frame}\n\n".encode("utf-8"))

        self._buffer += held
        return frames

    def flush(self) -> Optional[bytes]:
        """Return whatever is left in the buffer as a final frame, if anything."""
        self._buffer += self._decoder.decode(b"", final=True)
        self._buffer = self._buffer.replace("\r\n", "\n").replace("\r", "\n")
        if not self._buffer.strip():
            self._buffer = ""
            return None
        leftover = self._buffer
        self._buffer = ""
        if not leftover.endswith("\n"):
            leftover += "\n"
        return f"{leftover}\n".encode("utf-8")


def extract_sse_data(frame: bytes) -> Optional[str]:
    """Return the joined ``data:`` payload of one frame, or None if it has none."""
    text = frame.decode("utf-8", errors="replace")
    data_lines: list[str] = []
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if line.startswith("data:"):
            data_lines.append(line[5:].lstrip())
    if not data_lines:
        return None
    return "\n".join(data_lines).strip()
