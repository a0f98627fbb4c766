"""Tests for sdbridge/properties.py and the is_systemd() identity check."""

from __future__ import annotations

import os
import subprocess
from unittest.mock import Mock, patch

import pytest
from sdbridge import is_systemd
from sdbridge.config import ProbeConfig
from sdbridge.errors import (
    MissingDelimiterError,
    MissingPropertyError,
    PropertyParseError,
    StateParseError,
    SystemctlError,
)
from sdbridge.properties import ACTIVE_STATES, UnitProperties, parse_active_state, properties


class TestParseProperties:
    """Parsing `systemctl show` output."""

    def test_basic(self):
        props = UnitProperties.parse("ActiveState=active\nMainPID=123\n")

        assert props.state() == "active"
        assert props.property("MainPID") == "123"
        assert props.property("Nope") is None

    def test_duplicate_keys_keep_last_value(self):
        props = UnitProperties.parse("ActiveState=activating\nMainPID=1\nMainPID=2\nActiveState=active\n")

        assert props.property("MainPID") == "2"
        assert props.state() == "active"

    def test_value_may_contain_delimiter(self):
        props = UnitProperties.parse("ActiveState=failed\nExecStart=/bin/sh -c a=b\n")
        assert props.property("ExecStart") == "/bin/sh -c a=b"

    def test_lines_are_trimmed(self):
        props = UnitProperties.parse("  ActiveState=inactive  \r\n")
        assert props.state() == "inactive"

    @pytest.mark.parametrize("separator", ["\x0c", "\x1c", "\x85", "\u2028", "\r"])
    def test_values_may_contain_line_separators(self, separator):
        """Only \\n ends a line; other separators stay inside the value."""
        props = UnitProperties.parse(f"ActiveState=active\nDescription=a{separator}b\nMainPID=1\n")

        assert props.property("Description") == f"a{separator}b"
        assert props.property("MainPID") == "1"

    def test_missing_trailing_newline(self):
        props = UnitProperties.parse("MainPID=1\nActiveState=failed")
        assert props.state() == "failed"

    def test_missing_active_state(self):
        with pytest.raises(MissingPropertyError) as exc_info:
            UnitProperties.parse("MainPID=123\n")
        assert exc_info.value.name == "ActiveState"

    def test_missing_delimiter(self):
        with pytest.raises(MissingDelimiterError) as exc_info:
            UnitProperties.parse("ActiveState=active\nbogus line\n")
        assert exc_info.value.line == "bogus line"

    def test_blank_line_has_no_delimiter(self):
        with pytest.raises(MissingDelimiterError):
            UnitProperties.parse("ActiveState=active\n\nMainPID=1\n")

    @pytest.mark.parametrize("value", ["Active", "ACTIVE", "running", ""])
    def test_invalid_state(self, value):
        with pytest.raises(StateParseError) as exc_info:
            UnitProperties.parse(f"ActiveState={value}\n")
        assert exc_info.value.value == value

    @pytest.mark.parametrize("value", sorted(ACTIVE_STATES))
    def test_every_state_is_accepted(self, value):
        assert parse_active_state(value) == value

    def test_fields_are_read_only(self):
        props = UnitProperties.parse("ActiveState=active\n")
        with pytest.raises(TypeError):
            props.fields["MainPID"] = "1"  # type: ignore[index]

    def test_errors_share_base_class(self):
        for error in (MissingDelimiterError("x"), MissingPropertyError("x"), StateParseError("x")):
            assert isinstance(error, PropertyParseError)


def _completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> Mock:
    result = Mock(spec=subprocess.CompletedProcess)
    result.stdout = stdout
    result.stderr = stderr
    result.returncode = returncode
    return result


class TestSystemctlProbe:
    """Running systemctl through the probe adapter."""

    @patch("sdbridge.properties.subprocess.run")
    def test_runs_systemctl_show(self, mock_run):
        mock_run.return_value = _completed("ActiveState=active\nMainPID=99\n")

        props = properties("demo.service", ProbeConfig(command=["systemctl", "--user"], timeout=3.0))

        assert props.property("MainPID") == "99"
        args, kwargs = mock_run.call_args
        assert args[0] == ["systemctl", "--user", "show", "demo.service"]
        assert kwargs["timeout"] == 3.0
        assert kwargs["check"] is False

    @patch("sdbridge.properties.subprocess.run")
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("systemctl")

        with pytest.raises(SystemctlError):
            properties("demo.service", ProbeConfig(command=["systemctl"], timeout=None))

    @patch("sdbridge.properties.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(["systemctl"], 1.0)

        with pytest.raises(SystemctlError):
            properties("demo.service", ProbeConfig(command=["systemctl"], timeout=1.0))

    @patch("sdbridge.properties.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        mock_run.return_value = _completed(returncode=1, stderr="Failed to connect to bus")

        with pytest.raises(SystemctlError, match="Failed to connect to bus"):
            properties("demo.service", ProbeConfig(command=["systemctl"], timeout=None))


class TestIsSystemd:
    """Identity check against the unit's MainPID."""

    def test_matching_pid(self):
        probe = Mock(return_value=UnitProperties.parse(f"ActiveState=active\nMainPID={os.getpid()}\n"))

        assert is_systemd("demo.service", probe=probe) is True
        probe.assert_called_once_with("demo.service")

    def test_other_pid(self):
        probe = Mock(return_value=UnitProperties.parse("ActiveState=active\nMainPID=1\n"))
        assert is_systemd("demo.service", probe=probe, pid=2) is False

    def test_injected_pid(self):
        probe = Mock(return_value=UnitProperties.parse("ActiveState=active\nMainPID=4242\n"))
        assert is_systemd("demo.service", probe=probe, pid=4242) is True

    def test_missing_main_pid(self):
        probe = Mock(return_value=UnitProperties.parse("ActiveState=inactive\n"))
        assert is_systemd("demo.service", probe=probe) is False

    def test_probe_failure(self):
        probe = Mock(side_effect=SystemctlError("no systemctl"))
        assert is_systemd("demo.service", probe=probe) is False

    def test_parse_failure(self):
        probe = Mock(side_effect=MissingPropertyError("ActiveState"))
        assert is_systemd("demo.service", probe=probe) is False
