"""Reading and writing RFC 822 header blocks.

Header blocks are carried in email.message.Message objects, which keep
fields in order and allow repeated names.
"""

import re
from email.message import Message
from typing import BinaryIO, Optional

# Upper bound on the size of a header block read from a check program.
MAX_HEADER_BYTES = 1024 * 1024

_FIELD_NAME_RE = re.compile(rb"^[!-9;-~]+$")
_LINE_BREAK_RE = re.compile(r"\r?\n")


class HeaderError(ValueError):
    """Raised when a header block is malformed."""


def read_header(stream: BinaryIO, limit: int = MAX_HEADER_BYTES) -> Optional[Message]:
    """Read a header block from the start of a stream.

    Reading stops after the blank line terminating the block; nothing past
    it is consumed. End of stream before the terminator ends the block
    early and is not an error.

    Args:
        stream: Binary stream supporting readline()
        limit: Maximum number of bytes to read

    Returns:
        Message holding the fields read, or None if the stream ended
        before any field was read

    Raises:
        HeaderError: If a line is not a valid field or the block is too large
    """
    fields = []
    consumed = 0

    while True:
        line = stream.readline(limit - consumed + 1)
        if not line:
            break
        consumed += len(line)
        if consumed > limit:
            raise HeaderError(f"header block exceeds {limit} bytes")

        if line in (b"\r\n", b"\n"):
            break

        if line[:1] in (b" ", b"\t"):
            if not fields:
                raise HeaderError("continuation line before first header field")
            fields[-1][1].append(line.rstrip(b"\r\n"))
            continue

        name, sep, value = line.rstrip(b"\r\n").partition(b":")
        if not sep or not _FIELD_NAME_RE.match(name):
            raise HeaderError(f"malformed header line: {line[:80]!r}")
        fields.append((name, [value.lstrip(b" \t")]))

    if not fields:
        return None

    header = Message()
    for name, parts in fields:
        header[name.decode("ascii")] = b"".join(parts).decode("utf-8", errors="replace")
    return header


def write_header(header: Optional[Message]) -> bytes:
    """Serialize a header block, including the terminating blank line.

    Args:
        header: Header fields to write; None writes an empty block

    Returns:
        CRLF-terminated header block
    """
    lines = []
    if header is not None:
        for name, value in header.items():
            value = _LINE_BREAK_RE.sub("\r\n", str(value))
            lines.append(f"{name}: {value}\r\n")
    lines.append("\r\n")
    return "".join(lines).encode("utf-8")
