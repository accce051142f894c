"""CLI for trying a configured check against a message file."""

import io
import sys
import uuid
from pathlib import Path

import yaml

from .check import ConnState, Decision, MemoryBuffer, MsgMetadata, create_check, load_checks
from .check.textproto import HeaderError, read_header
from .common.config import load_typed_config
from .common.errors import ConfigError
from .common.logger import setup_logger

USAGE = "Usage: python -m policycheck <config.yaml> <check-name> <message-file> <sender> [<rcpt> ...]"


def replay(check, message: bytes, sender: str, rcpts):
    """Run a message through every stage of a check.

    Returns the first decision that rejects or quarantines the message.
    Otherwise returns the first non-empty decision, so a failure let
    through by an ignore action, or header fields added before the body
    stage, are still reported.
    """
    stream = io.BytesIO(message)
    header = read_header(stream)
    body = MemoryBuffer(stream.read())

    meta = MsgMetadata(
        id=uuid.uuid4().hex,
        conn=ConnState(remote_addr=("127.0.0.1", 0), hostname="localhost"),
    )
    state = check.state_for_msg(meta)
    try:
        steps = [state.check_connection, lambda: state.check_sender(sender)]
        steps += [lambda addr=addr: state.check_rcpt(addr) for addr in rcpts]
        steps.append(lambda: state.check_body(header, body))

        decision = Decision()
        for step in steps:
            outcome = step()
            if outcome.reject or outcome.quarantine:
                return outcome
            if decision.is_empty:
                decision = outcome
        return decision
    finally:
        state.close()


def main():
    """Main entry point for the check CLI."""
    if len(sys.argv) < 5:
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    config_path, check_name, message_path, sender = sys.argv[1:5]
    rcpts = sys.argv[5:]

    try:
        config = load_typed_config(config_path)
        checks = load_checks(config_path)
    except (FileNotFoundError, TypeError, yaml.YAMLError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logger(
        "policycheck",
        log_dir=config.logging.log_dir,
        level=config.logging.level,
        file_logging=config.logging.file_logging,
        console_logging=config.logging.console_logging,
    )

    if check_name not in checks:
        print(f"Error: no check named {check_name!r} in {config_path}", file=sys.stderr)
        sys.exit(2)

    try:
        check = create_check(checks[check_name])
        decision = replay(check, Path(message_path).read_bytes(), sender, rcpts)
    except (ConfigError, OSError, HeaderError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"Check: {check_name}")
    print(f"Decision: {decision.describe()}")
    for name, value in decision.header_fields:
        print(f"Header: {name}: {value}")
    if decision.reason is not None:
        for key, value in decision.reason.fields().items():
            print(f"  {key}: {value}")

    if decision.reject or decision.quarantine:
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
