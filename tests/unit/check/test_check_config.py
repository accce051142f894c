"""Tests for command check configuration."""

import pytest
import yaml

from policycheck.check.actions import IGNORE, QUARANTINE, REJECT, ActionKind, ReasonOverride
from policycheck.check.base import Stage
from policycheck.check.config import (
    DEFAULT_ACTIONS,
    CheckConfig,
    load_checks,
    parse_check_config,
    parse_codes,
    parse_stage,
)
from policycheck.common.errors import ConfigError


class TestParseCheckConfig:
    """Tests for parse_check_config."""

    def test_defaults(self):
        """Test a minimal section."""
        config = parse_check_config("spam", {"command": ["/usr/bin/check"]})

        assert config.name == "spam"
        assert config.command == "/usr/bin/check"
        assert config.args == ()
        assert config.stage is Stage.BODY
        assert dict(config.actions) == {1: REJECT, 2: QUARANTINE}
        assert config.timeout is None
        assert config.module == "command"

    def test_command_and_args(self):
        """Test the first command element is the program."""
        config = parse_check_config("c", {"command": ["check", "-s", "{sender}", 5]})

        assert config.command == "check"
        assert config.args == ("-s", "{sender}", "5")

    def test_command_string(self):
        """Test a bare string command."""
        assert parse_check_config("c", {"command": "check"}).command == "check"

    @pytest.mark.parametrize("stage", ["conn", "sender", "rcpt", "body", "RCPT"])
    def test_stages(self, stage):
        """Test every stage name is accepted."""
        config = parse_check_config("c", {"command": "check", "run_on": stage})
        assert config.stage.value == stage.lower()

    def test_timeout(self):
        """Test timeout parsing."""
        assert parse_check_config("c", {"command": "check", "timeout": 5}).timeout == 5.0

    @pytest.mark.parametrize(
        "section",
        [
            {},
            {"command": []},
            {"command": [""]},
            {"command": "check", "run_on": "data"},
            {"command": "check", "timeout": "soon"},
            {"command": "check", "timeout": 0},
            {"command": "check", "codes": ["reject"]},
            {"command": "check", "colour": "red"},
        ],
    )
    def test_invalid(self, section):
        """Test invalid sections raise ConfigError."""
        with pytest.raises(ConfigError):
            parse_check_config("c", section)


class TestParseCodes:
    """Tests for the exit code table."""

    def test_defaults_kept(self):
        """Test an empty section keeps the default table."""
        assert parse_codes({}) == dict(DEFAULT_ACTIONS)

    def test_add_and_override(self):
        """Test codes are added and defaults overridden."""
        actions = parse_codes({
            1: "ignore",
            3: "quarantine 450 4.7.1 'spam suspected'",
            "4": {"action": "reject", "code": 554, "message": "Blocked"},
            5: ["reject", "521"],
        })

        assert actions[1] == IGNORE
        assert actions[2] == QUARANTINE
        assert actions[3].kind is ActionKind.QUARANTINE
        assert actions[3].reason_override == ReasonOverride(450, (4, 7, 1), "spam suspected")
        assert actions[4].reason_override == ReasonOverride(554, None, "Blocked")
        assert actions[5].reason_override == ReasonOverride(521)

    @pytest.mark.parametrize(
        "codes",
        [{"one": "reject"}, {0: "reject"}, {256: "reject"}, {3: "drop"}, {3: 7}],
    )
    def test_invalid(self, codes):
        """Test malformed entries raise ConfigError."""
        with pytest.raises(ConfigError):
            parse_codes(codes)

    def test_error_names_code(self):
        """Test errors point at the offending entry."""
        with pytest.raises(ConfigError, match="codes.3"):
            parse_codes({3: "drop"})


class TestCheckConfig:
    """Tests for the CheckConfig value."""

    def test_immutable(self):
        """Test configuration cannot be modified after creation."""
        config = parse_check_config("c", {"command": "check", "codes": {3: "reject"}})

        with pytest.raises(AttributeError):
            config.stage = Stage.RCPT
        with pytest.raises(TypeError):
            config.actions[4] = REJECT

    def test_default_table_not_shared_mutable(self):
        """Test parsing does not alter the default table."""
        parse_check_config("c", {"command": "check", "codes": {1: "ignore"}})
        assert DEFAULT_ACTIONS[1] == REJECT

    def test_stage_coerced(self):
        """Test stage names are converted to Stage values."""
        assert CheckConfig(name="c", command="check", stage="rcpt").stage is Stage.RCPT

    def test_parse_stage_error(self):
        """Test unknown stage names list the allowed values."""
        with pytest.raises(ConfigError, match="conn, sender, rcpt, body"):
            parse_stage("data")


class TestLoadChecks:
    """Tests for loading checks from YAML files."""

    def test_load(self, tmp_path, sample_config):
        """Test loading every check of a file."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump(sample_config))

        checks = load_checks(str(config_file))

        assert list(checks) == ["spamcheck"]
        check = checks["spamcheck"]
        assert check.stage is Stage.BODY
        assert check.timeout == 30.0
        assert check.actions[3].reason_override.message == "spam suspected"

    def test_env_expansion(self, tmp_path, monkeypatch):
        """Test environment variables are expanded in commands."""
        monkeypatch.setenv("CHECK_BIN", "/opt/checks/bin")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "checks:\n  c:\n    command: [\"$CHECK_BIN/check\", \"{sender}\"]\n"
        )

        check = load_checks(str(config_file))["c"]
        assert check.command == "/opt/checks/bin/check"
        assert check.args == ("{sender}",)

    def test_invalid_check(self, tmp_path):
        """Test invalid sections fail loading."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("checks:\n  c:\n    command: check\n    run_on: never\n")

        with pytest.raises(ConfigError):
            load_checks(str(config_file))
