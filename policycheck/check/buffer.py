"""Message body buffers.

A Buffer holds a message body that may be read several times, once per
check that needs it. ChainedReader joins several readable streams into
one sequential stream without copying them into memory.
"""

import io
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Iterable, List, Union


class Buffer(ABC):
    """A re-readable message body."""

    @abstractmethod
    def open(self) -> BinaryIO:
        """Open a new binary reader positioned at the start of the body.

        Raises:
            OSError: If the underlying storage cannot be opened
        """

    @abstractmethod
    def __len__(self) -> int:
        """Size of the body in bytes."""

    def remove(self) -> None:
        """Release the underlying storage."""


class MemoryBuffer(Buffer):
    """Body held entirely in memory."""

    def __init__(self, data: bytes = b""):
        self.data = data

    def open(self) -> BinaryIO:
        return io.BytesIO(self.data)

    def __len__(self) -> int:
        return len(self.data)


class FileBuffer(Buffer):
    """Body spooled to a file on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def open(self) -> BinaryIO:
        return self.path.open("rb")

    def __len__(self) -> int:
        return self.path.stat().st_size

    def remove(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class ChainedReader(io.RawIOBase):
    """Read-only stream yielding the contents of several streams in order.

    Each underlying stream is closed once exhausted, and all remaining
    streams are closed when the reader itself is closed.
    """

    def __init__(self, streams: Iterable[BinaryIO]):
        super().__init__()
        self._streams: List[BinaryIO] = list(streams)

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        view = memoryview(b)
        while self._streams:
            data = self._streams[0].read(len(view))
            if data:
                n = len(data)
                view[:n] = data
                return n
            self._streams.pop(0).close()
        return 0

    def close(self) -> None:
        while self._streams:
            self._streams.pop(0).close()
        super().close()
