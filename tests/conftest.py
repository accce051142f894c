"""Pytest configuration and shared fixtures."""

import textwrap

import pytest

from policycheck.check.base import ConnState, MsgMetadata


@pytest.fixture
def sample_config():
    """Sample configuration dictionary."""
    return {
        "logging": {
            "level": "DEBUG",
            "log_dir": "/var/log/policycheck",
        },
        "checks": {
            "spamcheck": {
                "command": ["/bin/sh", "-c", "exit 0", "{sender}"],
                "run_on": "body",
                "timeout": 30,
                "codes": {
                    3: "quarantine 450 4.7.1 'spam suspected'",
                },
            },
        },
    }


@pytest.fixture
def conn_state():
    """Connection of an authenticated IPv4 client."""
    return ConnState(
        remote_addr=("192.0.2.10", 49152),
        hostname="client.example.org",
        auth_user="alice",
        rdns_name="mail.example.org",
    )


@pytest.fixture
def msg_meta(conn_state):
    """Message metadata with connection info."""
    return MsgMetadata(id="msg-0001", conn=conn_state)


@pytest.fixture
def make_script(tmp_path):
    """Factory writing executable shell scripts into tmp_path."""

    def _make(body: str, name: str = "check.sh") -> str:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + textwrap.dedent(body).lstrip("\n"))
        path.chmod(0o755)
        return str(path)

    return _make
