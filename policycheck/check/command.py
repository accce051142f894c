"""Command check: run an external program to decide on a message.

The check runs a configured program at one transaction stage (connection,
sender, each recipient, or body) and maps its exit code to a decision.
Arguments may contain placeholders filled from the transaction, see
policycheck.check.placeholders. At the body stage the program receives
the message header and body on stdin.

Example program (quarantines mail from one sender)::

    #!/bin/sh
    # run_on: sender, command: [/usr/local/bin/check-sender, "{address}"]
    echo "X-Sender-Checked: yes"
    echo
    [ "$1" = "spammer@example.org" ] && exit 2
    exit 0
"""

import io
from email.message import Message
from enum import Enum
from typing import List, Optional, Tuple

from ..common.errors import ConfigError
from ..common.logger import MessageLogger, get_logger
from .base import CheckState, Decision, MsgMetadata, Stage
from .buffer import Buffer, ChainedReader
from .classifier import classify, infrastructure_failure
from .config import CheckConfig
from .placeholders import ExpansionContext, expand_command
from .registry import register_check
from .runner import ProcessRunner, RunnerError, find_command, format_cmdline
from .textproto import write_header

MODULE_NAME = "command"

STAGE_ORDER = (Stage.CONNECTION, Stage.SENDER, Stage.RCPT, Stage.BODY)


class CheckPhase(str, Enum):
    """Where a transaction is relative to the check's trigger stage."""

    IDLE = "idle"  # trigger stage not reached yet
    TRIGGERED = "triggered"  # at the trigger stage, program has run
    PASSED = "passed"  # past the trigger stage
    CLOSED = "closed"


class CommandCheck:
    """A configured command check, shared by all transactions.

    Args:
        config: Check configuration
        runner: Process runner; one honouring config.timeout is created
            when not given
        validate: Check that the command can be found on PATH

    Raises:
        ConfigError: If the command cannot be found
    """

    def __init__(
        self,
        config: CheckConfig,
        runner: Optional[ProcessRunner] = None,
        validate: bool = True,
    ):
        if validate and find_command(config.command) is None:
            raise ConfigError(f"command not found: {config.command}", config.name)

        self.config = config
        self.runner = runner or ProcessRunner(timeout=config.timeout)
        self.logger = get_logger(MODULE_NAME)

    @classmethod
    def from_config(cls, config: CheckConfig) -> "CommandCheck":
        return cls(config)

    @property
    def name(self) -> str:
        return self.config.name

    def state_for_msg(self, meta: MsgMetadata) -> "CommandCheckState":
        """Create the per-transaction state for a new message."""
        return CommandCheckState(self, meta)


class CommandCheckState(CheckState):
    """Per-transaction state of a command check."""

    def __init__(self, check: CommandCheck, meta: MsgMetadata):
        self.check = check
        self.meta = meta
        self.logger = MessageLogger(check.logger, meta.id)
        self.phase = CheckPhase.IDLE
        self.mail_from = ""
        self._rcpts: List[str] = []

    @property
    def rcpts(self) -> Tuple[str, ...]:
        return tuple(self._rcpts)

    def check_connection(self) -> Decision:
        if not self._enter(Stage.CONNECTION):
            return Decision()
        command, args = self._expand("")
        return self._run(command, args)

    def check_sender(self, addr: str) -> Decision:
        self.mail_from = addr
        if not self._enter(Stage.SENDER):
            return Decision()
        command, args = self._expand(addr)
        return self._run(command, args)

    def check_rcpt(self, addr: str) -> Decision:
        self._rcpts.append(addr)
        if not self._enter(Stage.RCPT):
            return Decision()
        command, args = self._expand(addr)
        return self._run(command, args)

    def check_body(self, header: Message, body: Buffer) -> Decision:
        if not self._enter(Stage.BODY):
            return Decision()
        command, args = self._expand("")

        try:
            body_stream = body.open()
        except OSError as e:
            self.logger.error(f"Failed to open message body for {self.check.name}: {e}")
            return infrastructure_failure(
                format_cmdline(command, args),
                err=e,
                reason="failed to open message body",
                check_name=self.check.name,
            )

        stdin = ChainedReader([io.BytesIO(write_header(header)), body_stream])
        return self._run(command, args, stdin)

    def close(self) -> None:
        self.phase = CheckPhase.CLOSED

    def _enter(self, stage: Stage) -> bool:
        """Record that a stage event arrived; True if the check runs now."""
        trigger = self.check.config.stage
        if stage == trigger:
            self.phase = CheckPhase.TRIGGERED
            return True
        if STAGE_ORDER.index(stage) > STAGE_ORDER.index(trigger):
            self.phase = CheckPhase.PASSED
        self.logger.debug(f"{self.check.name}: skipping {stage.value} stage (runs on {trigger.value})")
        return False

    def _expand(self, address: str) -> Tuple[str, List[str]]:
        ctx = ExpansionContext(
            meta=self.meta,
            mail_from=self.mail_from,
            rcpts=self.rcpts,
            address=address,
        )
        return expand_command(self.check.config.command, self.check.config.args, ctx)

    def _run(self, command: str, args: List[str], stdin=None) -> Decision:
        try:
            result = self.check.runner.run(command, args, stdin)
        except RunnerError as e:
            self.logger.error(f"{self.check.name}: {e} (cmd: {e.cmdline})")
            return infrastructure_failure(
                e.cmdline, err=e.err, reason=str(e), check_name=self.check.name
            )

        decision = classify(result, self.check.config.actions, self.check.name)
        self._log_decision(decision)
        return decision

    def _log_decision(self, decision: Decision) -> None:
        reason = decision.reason
        if reason is None:
            self.logger.info(f"{self.check.name}: passed")
        elif reason.internal:
            self.logger.error(f"{self.check.name}: check failed: {reason.fields()}")
        elif decision.reject or decision.quarantine:
            verdict = "rejected" if decision.reject else "quarantined"
            self.logger.warning(f"{self.check.name}: {verdict}: {reason.fields()}")
        else:
            self.logger.info(f"{self.check.name}: failure ignored by policy: {reason.fields()}")


register_check(MODULE_NAME, CommandCheck.from_config)
