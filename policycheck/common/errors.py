"""Error types shared by policycheck components.

SMTPError is the structured reason attached to check decisions. It carries
everything the SMTP layer needs to answer the client (reply code, enhanced
status code, message) plus diagnostics for the operator log.
"""

from typing import Any, Dict, Optional, Tuple

EnhancedCode = Tuple[int, int, int]


def parse_enhanced_code(value: str) -> EnhancedCode:
    """Parse an RFC 3463 enhanced status code such as "5.7.1".

    Raises:
        ValueError: If the value is not three dot-separated integers
            with a class of 2, 4 or 5
    """
    parts = str(value).split(".")
    if len(parts) != 3:
        raise ValueError(f"Invalid enhanced status code: {value!r}")
    try:
        code = tuple(int(part) for part in parts)
    except ValueError as e:
        raise ValueError(f"Invalid enhanced status code: {value!r}") from e
    if code[0] not in (2, 4, 5):
        raise ValueError(f"Invalid enhanced status code class: {value!r}")
    return code  # type: ignore[return-value]


class SMTPError(Exception):
    """An SMTP-level failure reason.

    Attributes:
        code: Three-digit SMTP reply code
        enhanced_code: Enhanced status code triple, class derived from
            the reply code when not given
        message: Human-readable text sent to the client
        check_name: Name of the check that produced the error
        reason: Short operator-facing cause, not sent to the client
        err: Underlying exception, if any
        misc: Extra diagnostic fields (command line, exit code, ...)
        internal: True for server-side failures unrelated to the message
    """

    def __init__(
        self,
        code: int,
        message: str,
        enhanced_code: Optional[EnhancedCode] = None,
        check_name: str = "",
        reason: str = "",
        err: Optional[BaseException] = None,
        misc: Optional[Dict[str, Any]] = None,
        internal: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        if enhanced_code is None:
            enhanced_code = (code // 100, 0, 0)
        self.enhanced_code = enhanced_code
        self.check_name = check_name
        self.reason = reason
        self.err = err
        self.misc = dict(misc or {})
        self.internal = internal

    @property
    def is_temporary(self) -> bool:
        """True for 4xx replies the client is expected to retry."""
        return 400 <= self.code < 500

    @property
    def enhanced_code_str(self) -> str:
        return ".".join(str(part) for part in self.enhanced_code)

    def fields(self) -> Dict[str, Any]:
        """Flatten the error into a dictionary for structured logging."""
        result: Dict[str, Any] = {
            "smtp_code": self.code,
            "smtp_enchcode": self.enhanced_code_str,
            "smtp_msg": self.message,
        }
        if self.check_name:
            result["check"] = self.check_name
        if self.internal:
            result["internal"] = True
        if self.reason:
            result["reason"] = self.reason
        if self.err is not None:
            result["err"] = str(self.err)
        result.update(self.misc)
        return result

    def __str__(self) -> str:
        text = f"{self.code} {self.enhanced_code_str} {self.message}"
        if self.reason:
            text += f" ({self.reason})"
        if self.err is not None:
            text += f": {self.err}"
        return text

    def __repr__(self) -> str:
        return (
            f"SMTPError(code={self.code}, enhanced_code={self.enhanced_code}, "
            f"message={self.message!r}, reason={self.reason!r})"
        )


class ConfigError(ValueError):
    """Raised when check configuration is invalid."""

    def __init__(self, message: str, key: Optional[str] = None):
        if key:
            message = f"{key}: {message}"
        super().__init__(message)
        self.key = key
