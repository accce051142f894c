"""Base types for message checks.

Defines the transaction metadata handed to checks by the host pipeline,
the Decision returned from every check call, and the CheckState interface
that per-transaction check objects implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import Message
from enum import Enum
from typing import Any, Optional, Tuple, Union

from ..common.errors import SMTPError
from .buffer import Buffer


class Stage(str, Enum):
    """Transaction stage at which a check runs its external program."""

    CONNECTION = "conn"
    SENDER = "sender"
    RCPT = "rcpt"
    BODY = "body"


# Socket address as returned by socket.getpeername(): (host, port[, ...])
# for IP sockets, a path string for UNIX sockets.
RemoteAddr = Union[Tuple[Any, ...], str, None]


@dataclass
class ConnState:
    """Information about the SMTP connection a message arrived on."""

    remote_addr: RemoteAddr = None
    hostname: str = ""  # HELO/EHLO name given by the client
    auth_user: str = ""
    rdns_name: Optional[str] = None


@dataclass
class MsgMetadata:
    """Per-message metadata owned by the host pipeline."""

    id: str
    conn: Optional[ConnState] = None


@dataclass
class Decision:
    """Outcome of a single check call.

    An empty Decision (no reason, not rejected, not quarantined, no header)
    means the check did not run or found nothing and the transaction
    proceeds.
    """

    reason: Optional[SMTPError] = None
    reject: bool = False
    quarantine: bool = False
    header: Optional[Message] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.reason is None
            and not self.reject
            and not self.quarantine
            and self.header is None
        )

    @property
    def accepted(self) -> bool:
        """True if the transaction may continue."""
        return not self.reject

    @property
    def header_fields(self) -> list:
        """Header fields contributed by the check, as (name, value) pairs."""
        if self.header is None:
            return []
        return list(self.header.items())

    def describe(self) -> str:
        if self.reject:
            verdict = "reject"
        elif self.quarantine:
            verdict = "quarantine"
        else:
            verdict = "accept"
        if self.reason is not None:
            return f"{verdict}: {self.reason}"
        return verdict


class CheckState(ABC):
    """Per-transaction state of a check.

    The host pipeline calls the check_* methods in protocol order: at most
    one connection event, at most one sender event, one event per recipient,
    at most one body event. close() is called when the transaction ends.
    """

    @abstractmethod
    def check_connection(self) -> Decision:
        """Called once the connection is established."""

    @abstractmethod
    def check_sender(self, addr: str) -> Decision:
        """Called with the MAIL FROM address."""

    @abstractmethod
    def check_rcpt(self, addr: str) -> Decision:
        """Called with each RCPT TO address."""

    @abstractmethod
    def check_body(self, header: Message, body: Buffer) -> Decision:
        """Called with the message header and body once DATA completes."""

    @abstractmethod
    def close(self) -> None:
        """Release per-transaction resources."""
