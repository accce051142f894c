"""Typed configuration for command checks.

Example section::

    checks:
      spamcheck:
        command: [/usr/local/bin/check-msg, -s, "{sender}"]
        run_on: body
        timeout: 60
        codes:
          3: quarantine 450 4.7.1 "spam suspected"
          4:
            action: reject
            code: 554
            message: Blocked
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from ..common.config import load_typed_config
from ..common.errors import ConfigError
from .actions import QUARANTINE, REJECT, PolicyAction, parse_action_directive, parse_action_mapping
from .base import Stage

DEFAULT_STAGE = Stage.BODY

# Exit code to action table every check starts from.
DEFAULT_ACTIONS: Mapping[int, PolicyAction] = MappingProxyType({
    1: REJECT,
    2: QUARANTINE,
})

KNOWN_KEYS = {"module", "command", "run_on", "timeout", "codes"}


def _freeze_actions(actions: Mapping[int, PolicyAction]) -> Mapping[int, PolicyAction]:
    return MappingProxyType(dict(actions))


@dataclass(frozen=True)
class CheckConfig:
    """Configuration of one command check instance.

    Created once when configuration is loaded and shared read-only by
    every transaction the check runs for.
    """

    name: str
    command: str
    args: Tuple[str, ...] = ()
    stage: Stage = DEFAULT_STAGE
    actions: Mapping[int, PolicyAction] = field(default_factory=lambda: DEFAULT_ACTIONS)
    timeout: Optional[float] = None
    module: str = "command"

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))
        object.__setattr__(self, "stage", Stage(self.stage))
        object.__setattr__(self, "actions", _freeze_actions(self.actions))


def parse_stage(value: Any) -> Stage:
    try:
        return Stage(str(value).lower())
    except ValueError:
        allowed = ", ".join(stage.value for stage in Stage)
        raise ConfigError(f"invalid stage {value!r}, expected one of: {allowed}", "run_on") from None


def parse_codes(codes: Dict[Any, Any]) -> Dict[int, PolicyAction]:
    """Parse the codes section into an exit code to action table.

    Entries are added to, or replace, the default table.

    Raises:
        ConfigError: On a non-integer code or malformed action
    """
    actions = dict(DEFAULT_ACTIONS)
    for raw_code, raw_action in codes.items():
        key = f"codes.{raw_code}"
        try:
            exit_code = int(raw_code)
        except (TypeError, ValueError):
            raise ConfigError(f"exit code must be an integer, got {raw_code!r}", key) from None
        if not 0 < exit_code < 256:
            raise ConfigError(f"exit code out of range: {exit_code}", key)

        try:
            if isinstance(raw_action, dict):
                action = parse_action_mapping(raw_action)
            elif isinstance(raw_action, (str, list)):
                action = parse_action_directive(raw_action)
            else:
                raise ValueError(f"unsupported action value: {raw_action!r}")
        except ValueError as e:
            raise ConfigError(str(e), key) from e

        actions[exit_code] = action
    return actions


def _parse_command(value: Any) -> Tuple[str, Tuple[str, ...]]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not value:
        raise ConfigError("at least one argument is required (command name)", "command")
    parts = [str(part) for part in value]
    if not parts[0]:
        raise ConfigError("command name is empty", "command")
    return parts[0], tuple(parts[1:])


def parse_check_config(name: str, check_dict: Dict[str, Any]) -> CheckConfig:
    """Parse one check section.

    Args:
        name: Check instance name
        check_dict: Check configuration dictionary

    Returns:
        CheckConfig instance

    Raises:
        ConfigError: If the section is invalid
    """
    unknown = set(check_dict) - KNOWN_KEYS
    if unknown:
        raise ConfigError(f"unexpected directive: {', '.join(sorted(unknown))}", name)

    command, args = _parse_command(check_dict.get("command"))
    stage = parse_stage(check_dict.get("run_on", DEFAULT_STAGE.value))

    codes = check_dict.get("codes") or {}
    if not isinstance(codes, dict):
        raise ConfigError("must be a mapping of exit code to action", "codes")

    timeout = check_dict.get("timeout")
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"must be a number, got {timeout!r}", "timeout") from None
        if timeout <= 0:
            raise ConfigError("must be positive", "timeout")

    return CheckConfig(
        name=name,
        command=command,
        args=args,
        stage=stage,
        actions=parse_codes(codes),
        timeout=timeout,
        module=str(check_dict.get("module", "command")),
    )


def load_checks(config_path: str) -> Dict[str, CheckConfig]:
    """Load all check sections from a configuration file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigError: If a check section is invalid
    """
    config = load_typed_config(config_path)
    return {
        name: parse_check_config(name, section)
        for name, section in config.checks.items()
    }
