"""Message checks.

Importing this package registers the built-in check modules.
"""

from .actions import ActionKind, PolicyAction, ReasonOverride, parse_action_directive
from .base import CheckState, ConnState, Decision, MsgMetadata, Stage
from .buffer import Buffer, FileBuffer, MemoryBuffer
from .command import CommandCheck, CommandCheckState
from .config import CheckConfig, load_checks, parse_check_config
from .registry import create_check, get_registry, register_check

__all__ = [
    "ActionKind",
    "Buffer",
    "CheckConfig",
    "CheckState",
    "CommandCheck",
    "CommandCheckState",
    "ConnState",
    "Decision",
    "FileBuffer",
    "MemoryBuffer",
    "MsgMetadata",
    "PolicyAction",
    "ReasonOverride",
    "Stage",
    "create_check",
    "get_registry",
    "load_checks",
    "parse_action_directive",
    "parse_check_config",
    "register_check",
]
