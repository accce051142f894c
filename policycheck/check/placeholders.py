"""Placeholder expansion for check command lines.

Arguments of a configured command may contain placeholders such as
{sender} or {msg_id}; they are replaced with values from the current
transaction before the command is run. Unknown placeholders are left as
they are.
"""

import ipaddress
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

from .base import ConnState, MsgMetadata

PLACEHOLDER_RE = re.compile(r"{[a-zA-Z0-9_]+?}")


class Placeholder(str, Enum):
    """Recognized placeholder tokens."""

    AUTH_USER = "{auth_user}"
    SOURCE_IP = "{source_ip}"
    SOURCE_HOST = "{source_host}"
    SOURCE_RDNS = "{source_rdns}"
    MSG_ID = "{msg_id}"
    SENDER = "{sender}"
    RCPTS = "{rcpts}"
    ADDRESS = "{address}"


@dataclass(frozen=True)
class ExpansionContext:
    """Snapshot of transaction data available to placeholders."""

    meta: MsgMetadata
    mail_from: str = ""
    rcpts: Tuple[str, ...] = ()
    address: str = ""


def _source_ip(conn: ConnState) -> str:
    addr = conn.remote_addr
    if not isinstance(addr, tuple) or not addr:
        return ""
    try:
        return str(ipaddress.ip_address(addr[0]))
    except ValueError:
        return ""


def _conn_value(getter: Callable[[ConnState], str]) -> Callable[[ExpansionContext], str]:
    def resolve(ctx: ExpansionContext) -> str:
        if ctx.meta.conn is None:
            return ""
        return getter(ctx.meta.conn) or ""

    return resolve


RESOLVERS: Dict[Placeholder, Callable[[ExpansionContext], str]] = {
    Placeholder.AUTH_USER: _conn_value(lambda conn: conn.auth_user),
    Placeholder.SOURCE_IP: _conn_value(_source_ip),
    Placeholder.SOURCE_HOST: _conn_value(lambda conn: conn.hostname),
    Placeholder.SOURCE_RDNS: _conn_value(lambda conn: conn.rdns_name),
    Placeholder.MSG_ID: lambda ctx: ctx.meta.id,
    Placeholder.SENDER: lambda ctx: ctx.mail_from,
    Placeholder.RCPTS: lambda ctx: "\n".join(ctx.rcpts),
    Placeholder.ADDRESS: lambda ctx: ctx.address,
}


def expand_arg(arg: str, ctx: ExpansionContext) -> str:
    """Replace every recognized placeholder in a single argument."""

    def substitute(match: "re.Match[str]") -> str:
        token = match.group(0)
        try:
            placeholder = Placeholder(token)
        except ValueError:
            return token
        return RESOLVERS[placeholder](ctx)

    return PLACEHOLDER_RE.sub(substitute, arg)


def expand_command(
    command: str, args: Sequence[str], ctx: ExpansionContext
) -> Tuple[str, List[str]]:
    """Expand a command template for the given transaction.

    Args:
        command: Program name or path, used as is
        args: Argument templates
        ctx: Transaction data

    Returns:
        Tuple of (command, expanded argument list)
    """
    return command, [expand_arg(arg, ctx) for arg in args]
