"""Mapping of check program termination status to decisions.

Exit code 0 accepts. A nonzero exit code is looked up in the configured
code table and the matching PolicyAction decides between accepting,
rejecting and quarantining. Everything else (the program could not be run,
was killed by a signal, timed out, or exited with a code nobody mapped) is
an infrastructure failure and yields a temporary rejection.
"""

import signal as signal_module
from typing import Any, Dict, Mapping, Optional

from ..common.errors import SMTPError
from .actions import PolicyAction
from .base import Decision
from .runner import RunResult

CHECK_NAME = "command"

INTERNAL_ERROR_CODE = 450
INTERNAL_ERROR_MESSAGE = "Internal server error"

POLICY_REJECT_CODE = 550
POLICY_REJECT_ENHANCED_CODE = (5, 7, 1)
POLICY_REJECT_MESSAGE = "Message rejected due to a local policy"


def infrastructure_failure(
    cmdline: str,
    err: Optional[BaseException] = None,
    reason: str = "",
    exit_code: Optional[int] = None,
    check_name: str = CHECK_NAME,
    **misc: Any,
) -> Decision:
    """Build the temporary rejection used for all infrastructure failures."""
    fields: Dict[str, Any] = {"cmd": cmdline}
    if exit_code is not None:
        fields["exit_code"] = exit_code
    fields.update(misc)
    return Decision(
        reason=SMTPError(
            code=INTERNAL_ERROR_CODE,
            enhanced_code=(4, 0, 0),
            message=INTERNAL_ERROR_MESSAGE,
            check_name=check_name,
            reason=reason,
            err=err,
            misc=fields,
            internal=True,
        ),
        reject=True,
    )


def policy_rejection(cmdline: str, exit_code: int, check_name: str = CHECK_NAME) -> Decision:
    """Build the default permanent rejection for a mapped exit code."""
    return Decision(
        reason=SMTPError(
            code=POLICY_REJECT_CODE,
            enhanced_code=POLICY_REJECT_ENHANCED_CODE,
            message=POLICY_REJECT_MESSAGE,
            check_name=check_name,
            misc={"cmd": cmdline, "exit_code": exit_code},
        ),
    )


def _signal_name(signum: int) -> str:
    try:
        return signal_module.Signals(signum).name
    except ValueError:
        return str(signum)


def classify(
    result: RunResult,
    actions: Mapping[int, PolicyAction],
    check_name: str = CHECK_NAME,
) -> Decision:
    """Turn a check program's termination status into a Decision.

    Args:
        result: Outcome of ProcessRunner.run()
        actions: Exit code to action table
        check_name: Name reported in SMTP errors

    Returns:
        Decision carrying the program's header block, if it printed one
    """
    if result.timed_out:
        decision = infrastructure_failure(
            result.cmdline, reason="check program timed out", check_name=check_name
        )
    elif not result.exited:
        decision = infrastructure_failure(
            result.cmdline,
            reason=f"check program killed by signal {_signal_name(result.signal)}",
            check_name=check_name,
            signal=result.signal,
        )
    elif result.returncode == 0:
        decision = Decision()
    elif result.returncode in actions:
        decision = actions[result.returncode].apply(
            policy_rejection(result.cmdline, result.returncode, check_name)
        )
    else:
        decision = infrastructure_failure(
            result.cmdline,
            reason="unexpected exit code",
            exit_code=result.returncode,
            check_name=check_name,
        )

    decision.header = result.header
    return decision
