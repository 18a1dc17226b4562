"""Tests for SSE framing."""

from msgbridge.core.sse import SSEDecoder, extract_sse_data


class TestSSEDecoder:
    """Tests for re-framing network reads into whole frames."""

    def test_single_frame(self):
        """Test one complete frame is returned unchanged."""
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"a":1}\n\n') == [b'data: {"a":1}\n\n']

    def test_multiple_frames_in_one_read(self):
        """Test several frames in one read are split apart."""
        decoder = SSEDecoder()
        frames = decoder.feed(b"data: 1\n\ndata: 2\n\ndata: [DONE]\n\n")
        assert frames == [b"data: 1\n\n", b"data: 2\n\n", b"data: [DONE]\n\n"]

    def test_frame_split_across_reads(self):
        """Test a frame split at an arbitrary byte is reassembled."""
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"choi') == []
        assert decoder.feed(b'ces":[]}\n') == []
        assert decoder.feed(b"\ndata: x") == [b'data: {"choices":[]}\n\n']
        assert decoder.feed(b"\n\n") == [b"data: x\n\n"]

    def test_multibyte_character_split(self):
        """Test a UTF-8 character split across reads is preserved."""
        decoder = SSEDecoder()
        payload = "data: café\n\n".encode("utf-8")
        split = payload.index(b"\xc3") + 1
        frames = decoder.feed(payload[:split]) + decoder.feed(payload[split:])
        assert frames == [payload]

    def test_crlf_normalized(self):
        """Test CRLF line endings are normalized."""
        decoder = SSEDecoder()
        assert decoder.feed(b"data: 1\r\n\r\n") == [b"data: 1\n\n"]

    def test_crlf_split_across_reads(self):
        """Test a CRLF split between reads is not read as two line breaks."""
        decoder = SSEDecoder()
        assert decoder.feed(b"data: 1\r") == []
        assert decoder.feed(b"\ndata: 2\r\n\r\n") == [b"data: 1\ndata: 2\n\n"]

    def test_blank_frames_skipped(self):
        """Test extra blank lines do not produce empty frames."""
        decoder = SSEDecoder()
        assert decoder.feed(b"\n\n\n\ndata: 1\n\n") == [b"data: 1\n\n"]

    def test_flush_returns_unterminated_frame(self):
        """Test trailing bytes without a blank line are returned by flush."""
        decoder = SSEDecoder()
        assert decoder.feed(b"data: tail") == []
        assert decoder.flush() == b"data: tail\n\n"
        assert decoder.flush() is None

    def test_flush_empty(self):
        """Test flush on an empty buffer returns None."""
        assert SSEDecoder().flush() is None


class TestExtractSSEData:
    """Tests for reading the data payload of a frame."""

    def test_data_line(self):
        """Test a data line is returned without its prefix."""
        assert extract_sse_data(b'data: {"a":1}\n\n') == '{"a":1}'

    def test_data_without_space(self):
        """Test the space after the colon is optional."""
        assert extract_sse_data(b"data:[DONE]\n\n") == "[DONE]"

    def test_multiple_data_lines_joined(self):
        """Test multi-line data is joined with newlines."""
        assert extract_sse_data(b"event: x\ndata: a\ndata: b\n\n") == "a\nb"

    def test_no_data(self):
        """Test comment frames have no data."""
        assert extract_sse_data(b": keep-alive\n\n") is None
