"""Policy actions applied to failed checks.

A PolicyAction says what to do with a check failure: let the message
through anyway, reject it, or accept it into quarantine. It can also
replace the SMTP reply sent to the client.

Directive syntax, as used in configuration files:

    ignore
    reject [<code> [<enhanced code>] [<message>]]
    quarantine [<code> [<enhanced code>] [<message>]]
"""

import shlex
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

from ..common.errors import EnhancedCode, SMTPError, parse_enhanced_code
from .base import Decision


class ActionKind(str, Enum):
    """What to do with a failed check."""

    IGNORE = "ignore"
    REJECT = "reject"
    QUARANTINE = "quarantine"


@dataclass(frozen=True)
class ReasonOverride:
    """Replacement SMTP reply for a failed check."""

    code: int
    enhanced_code: Optional[EnhancedCode] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class PolicyAction:
    """Configured response to a check failure."""

    kind: ActionKind
    reason_override: Optional[ReasonOverride] = None

    @property
    def reject(self) -> bool:
        return self.kind is ActionKind.REJECT

    @property
    def quarantine(self) -> bool:
        return self.kind is ActionKind.QUARANTINE

    def apply(self, decision: Decision) -> Decision:
        """Transform a failed-check decision according to this action.

        Decisions without a reason are returned unchanged. The override,
        if any, wraps the original reason so the underlying cause and its
        diagnostic fields are kept.
        """
        if decision.reason is None:
            return decision

        reason = decision.reason
        if self.reason_override is not None:
            override = self.reason_override
            reason = SMTPError(
                code=override.code,
                enhanced_code=override.enhanced_code
                or (override.code // 100,) + tuple(reason.enhanced_code[1:]),
                message=override.message or reason.message,
                check_name=reason.check_name,
                reason=reason.reason,
                err=reason,
                misc=reason.misc,
                internal=reason.internal,
            )

        return replace(
            decision,
            reason=reason,
            reject=self.reject,
            quarantine=self.quarantine,
        )

    def __str__(self) -> str:
        if self.reason_override is None:
            return self.kind.value
        parts = [self.kind.value, str(self.reason_override.code)]
        if self.reason_override.enhanced_code:
            parts.append(".".join(map(str, self.reason_override.enhanced_code)))
        if self.reason_override.message:
            parts.append(shlex.quote(self.reason_override.message))
        return " ".join(parts)


IGNORE = PolicyAction(ActionKind.IGNORE)
REJECT = PolicyAction(ActionKind.REJECT)
QUARANTINE = PolicyAction(ActionKind.QUARANTINE)


def parse_action_directive(args: Union[str, Sequence[str]]) -> PolicyAction:
    """Parse an action directive.

    Args:
        args: Directive as a string ("reject 550 5.7.1 'Go away'") or
            an already-split argument list

    Returns:
        PolicyAction

    Raises:
        ValueError: If the directive is malformed
    """
    if isinstance(args, str):
        args = shlex.split(args)
    args = [str(arg) for arg in args]
    if not args:
        raise ValueError("action directive is empty")

    try:
        kind = ActionKind(args[0].lower())
    except ValueError:
        raise ValueError(
            f"unknown action: {args[0]!r}, expected one of: ignore, reject, quarantine"
        ) from None

    rest = args[1:]
    if kind is ActionKind.IGNORE:
        if rest:
            raise ValueError("ignore action takes no arguments")
        return IGNORE
    if not rest:
        return PolicyAction(kind)
    if len(rest) > 3:
        raise ValueError(
            "too many arguments, expected: <action> [<code> [<enhanced code>] [<message>]]"
        )

    code = _parse_reply_code(rest[0])
    enhanced_code = None
    message = None
    if len(rest) >= 2:
        try:
            enhanced_code = parse_enhanced_code(rest[1])
        except ValueError:
            if len(rest) == 3:
                raise
            message = rest[1]
    if len(rest) == 3:
        message = rest[2]

    return PolicyAction(kind, ReasonOverride(code, enhanced_code, message))


def parse_action_mapping(data: Dict[str, Any]) -> PolicyAction:
    """Parse the mapping form of an action.

    Example::

        {"action": "reject", "code": 554, "enhanced_code": "5.7.0",
         "message": "Blocked"}

    Raises:
        ValueError: If the mapping is malformed
    """
    unknown = set(data) - {"action", "code", "enhanced_code", "message"}
    if unknown:
        raise ValueError(f"unexpected keys in action: {', '.join(sorted(unknown))}")
    if "action" not in data:
        raise ValueError("action mapping requires an 'action' key")

    action = parse_action_directive([str(data["action"])])
    if "code" not in data:
        if "enhanced_code" in data or "message" in data:
            raise ValueError("'enhanced_code' and 'message' require 'code'")
        return action
    if action.kind is ActionKind.IGNORE:
        raise ValueError("ignore action takes no arguments")

    enhanced_code = None
    if "enhanced_code" in data:
        enhanced_code = parse_enhanced_code(str(data["enhanced_code"]))
    message = data.get("message")
    override = ReasonOverride(
        code=_parse_reply_code(str(data["code"])),
        enhanced_code=enhanced_code,
        message=str(message) if message is not None else None,
    )
    return PolicyAction(action.kind, override)


def _parse_reply_code(value: str) -> int:
    try:
        code = int(value)
    except ValueError:
        raise ValueError(f"invalid SMTP reply code: {value!r}") from None
    if not 200 <= code <= 599:
        raise ValueError(f"SMTP reply code out of range: {code}")
    return code
