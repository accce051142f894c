"""Tests for body buffers and the chained reader."""

import io

import pytest

from policycheck.check.buffer import ChainedReader, FileBuffer, MemoryBuffer


class TestMemoryBuffer:
    """Tests for MemoryBuffer."""

    def test_reopen(self):
        """Test the body can be read more than once."""
        buf = MemoryBuffer(b"body")
        assert buf.open().read() == b"body"
        assert buf.open().read() == b"body"
        assert len(buf) == 4


class TestFileBuffer:
    """Tests for FileBuffer."""

    def test_open(self, tmp_path):
        """Test reading a spooled body."""
        path = tmp_path / "body"
        path.write_bytes(b"spooled body")
        buf = FileBuffer(path)

        with buf.open() as f:
            assert f.read() == b"spooled body"
        assert len(buf) == 12

    def test_open_missing(self, tmp_path):
        """Test opening a removed spool file fails with OSError."""
        with pytest.raises(OSError):
            FileBuffer(tmp_path / "missing").open()

    def test_remove(self, tmp_path):
        """Test removing the spool file, twice."""
        path = tmp_path / "body"
        path.write_bytes(b"x")
        buf = FileBuffer(path)

        buf.remove()
        buf.remove()
        assert not path.exists()


class TestChainedReader:
    """Tests for ChainedReader."""

    def test_concatenates(self):
        """Test streams are read in order."""
        reader = ChainedReader([io.BytesIO(b"Header: 1\r\n\r\n"), io.BytesIO(b"body")])
        assert reader.read() == b"Header: 1\r\n\r\nbody"

    def test_small_reads(self):
        """Test reads never span two streams."""
        reader = ChainedReader([io.BytesIO(b"ab"), io.BytesIO(b"cd")])
        assert reader.read(3) == b"ab"
        assert reader.read(3) == b"cd"
        assert reader.read(3) == b""

    def test_empty_streams(self):
        """Test empty streams are skipped."""
        reader = ChainedReader([io.BytesIO(b""), io.BytesIO(b"x"), io.BytesIO(b"")])
        assert reader.read() == b"x"

    def test_close_closes_streams(self):
        """Test closing the reader closes unread streams."""
        first, second = io.BytesIO(b"a"), io.BytesIO(b"b")
        reader = ChainedReader([first, second])
        reader.close()

        assert first.closed
        assert second.closed
        assert reader.closed
