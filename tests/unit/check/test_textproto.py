"""Tests for header block reading and writing."""

import io
from email.message import Message

import pytest

from policycheck.check.textproto import HeaderError, read_header, write_header


class TestReadHeader:
    """Tests for read_header."""

    def test_single_field(self):
        """Test a single field followed by a blank line."""
        header = read_header(io.BytesIO(b"X-Checked: yes\n\n"))
        assert header.items() == [("X-Checked", "yes")]

    def test_stops_at_terminator(self):
        """Test nothing after the blank line is consumed."""
        stream = io.BytesIO(b"A: 1\r\nB: 2\r\n\r\nnot: a header\r\n")
        header = read_header(stream)
        assert header.items() == [("A", "1"), ("B", "2")]
        assert stream.read() == b"not: a header\r\n"

    def test_empty_stream(self):
        """Test no output gives no header."""
        assert read_header(io.BytesIO(b"")) is None

    def test_blank_line_only(self):
        """Test an empty header block gives no header."""
        assert read_header(io.BytesIO(b"\n")) is None

    def test_eof_before_terminator(self):
        """Test fields read before a premature end of stream are kept."""
        header = read_header(io.BytesIO(b"A: 1\nB: 2"))
        assert header.items() == [("A", "1"), ("B", "2")]

    def test_repeated_fields(self):
        """Test repeated field names are all kept in order."""
        header = read_header(io.BytesIO(b"Received: one\nReceived: two\n\n"))
        assert header.get_all("Received") == ["one", "two"]

    def test_folded_field(self):
        """Test continuation lines are unfolded."""
        header = read_header(io.BytesIO(b"Subject: a long\r\n\tsubject line\r\n\r\n"))
        assert header["Subject"] == "a long\tsubject line"

    def test_value_without_space(self):
        """Test values directly after the colon."""
        header = read_header(io.BytesIO(b"X-Score:5\n\n"))
        assert header["X-Score"] == "5"

    @pytest.mark.parametrize(
        "data",
        [
            b"no colon here\n\n",
            b": empty name\n\n",
            b"Bad Name: value\n\n",
            b" leading continuation\n\n",
        ],
    )
    def test_malformed(self, data):
        """Test malformed header blocks are rejected."""
        with pytest.raises(HeaderError):
            read_header(io.BytesIO(data))

    def test_size_limit(self):
        """Test oversized header blocks are rejected."""
        with pytest.raises(HeaderError, match="exceeds"):
            read_header(io.BytesIO(b"X-Long: " + b"a" * 100 + b"\n\n"), limit=50)


class TestWriteHeader:
    """Tests for write_header."""

    def test_fields_in_order(self):
        """Test fields are written in order with CRLF line endings."""
        header = Message()
        header["From"] = "sender@example.org"
        header["Subject"] = "Hello"
        assert write_header(header) == (
            b"From: sender@example.org\r\nSubject: Hello\r\n\r\n"
        )

    def test_none(self):
        """Test a missing header gives an empty block."""
        assert write_header(None) == b"\r\n"

    def test_folded_values_use_crlf(self):
        """Test folded values are normalized to CRLF."""
        header = Message()
        header["Subject"] = "line one\n line two"
        assert write_header(header) == b"Subject: line one\r\n line two\r\n\r\n"

    def test_read_back(self):
        """Test a written block reads back to the same fields."""
        header = Message()
        header["A"] = "1"
        header["A"] = "2"
        assert read_header(io.BytesIO(write_header(header))).items() == [("A", "1"), ("A", "2")]
