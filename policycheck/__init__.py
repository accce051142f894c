"""policycheck: external-program policy checks for inbound mail."""

__version__ = "0.1.0"
