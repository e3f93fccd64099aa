"""Tests for NetworkEmulator class."""

import subprocess

import pytest

from tcswitch import ImpairmentError, NetworkEmulator, NetworkProfile, ShapingResult
from tcswitch.emulator import apply_profile, build_netem_params, clear_profile

BASELINE = NetworkProfile("C01", 0, 0, 0)
LOSSY = NetworkProfile("C02", 100, 10, 2)
DELAY_ONLY = NetworkProfile("C03", 50, 0, 0)


class TestNetworkEmulatorInit:
    """Tests for NetworkEmulator initialization."""

    def test_default_init(self):
        """Test default initialization."""
        emu = NetworkEmulator()

        assert emu.interface == "eth0"
        assert emu.use_sudo is True
        assert emu.timeout_sec == 10.0
        assert emu.current_profile is None

    def test_custom_interface(self):
        """Test initialization with custom interface."""
        emu = NetworkEmulator(interface="enp0s3")

        assert emu.interface == "enp0s3"


class TestNetemParams:
    """Tests for netem parameter building."""

    def test_delay_jitter_and_loss(self):
        """Test a fully impaired profile."""
        assert build_netem_params(LOSSY) == [
            "delay", "50.0ms", "10ms", "distribution", "normal", "loss", "2%",
        ]

    def test_delay_only(self):
        """Test no jitter or loss terms when they are zero."""
        assert build_netem_params(DELAY_ONLY) == ["delay", "25.0ms"]

    def test_odd_rtt(self):
        """Test the one-way delay keeps one decimal place."""
        assert build_netem_params(NetworkProfile("X", 75, 0, 0)) == ["delay", "37.5ms"]

    def test_jitter_without_rtt(self):
        """Test jitter alone still produces a delay term."""
        assert build_netem_params(NetworkProfile("X", 0, 5, 0)) == [
            "delay", "0.0ms", "5ms", "distribution", "normal",
        ]

    def test_loss_only(self):
        """Test loss alone produces no delay term."""
        assert build_netem_params(NetworkProfile("X", 0, 0, 0.5)) == ["loss", "0.5%"]

    def test_baseline_empty(self):
        """Test building params with no impairments."""
        assert build_netem_params(BASELINE) == []


class TestApply:
    """Tests for applying profiles."""

    def test_apply_installs_netem(self, emulator, fake_tc):
        """Test a profile is installed as a root netem qdisc."""
        result = emulator.apply(LOSSY)

        assert result.success
        assert result.command == "tc qdisc add dev eth0 root netem delay 50.0ms 10ms distribution normal loss 2%"
        assert fake_tc.qdiscs == {"eth0": ["netem", *build_netem_params(LOSSY)]}
        assert emulator.current_profile == "C02"

    def test_apply_clears_first(self, emulator, fake_tc):
        """Test every apply starts with a delete of the root qdisc."""
        emulator.apply(LOSSY)

        assert fake_tc.calls[0] == ["tc", "qdisc", "del", "dev", "eth0", "root"]

    def test_apply_twice_is_idempotent(self, emulator, fake_tc):
        """Test applying the same profile twice equals applying it once."""
        emulator.apply(LOSSY)
        once = dict(fake_tc.qdiscs)

        result = emulator.apply(LOSSY)

        assert result.success
        assert fake_tc.qdiscs == once

    def test_apply_replaces_previous_profile(self, emulator, fake_tc):
        """Test a second profile replaces the first."""
        emulator.apply(LOSSY)
        emulator.apply(DELAY_ONLY)

        assert fake_tc.qdiscs == {"eth0": ["netem", "delay", "25.0ms"]}

    def test_baseline_clears_active_shaping(self, emulator, fake_tc):
        """Test the zero profile leaves the interface unshaped."""
        emulator.apply(LOSSY)

        result = emulator.apply(BASELINE)

        assert result.success
        assert fake_tc.qdiscs == {}
        assert emulator.current_profile == "C01"

    def test_baseline_never_adds_rule(self, emulator, fake_tc):
        """Test the zero profile is a pure clear from a clean state."""
        result = emulator.apply(BASELINE)

        assert result.success
        assert fake_tc.add_calls() == []
        assert fake_tc.qdiscs == {}

    def test_apply_failure_reported(self, emulator, fake_tc):
        """Test a failing tc returns exit code and diagnostics without raising."""
        fake_tc.fail_add = True

        result = emulator.apply(LOSSY)

        assert not result.success
        assert result.returncode == 2
        assert "qdisc kind is unknown" in result.output
        assert emulator.current_profile is None

    def test_sudo_prefix_when_not_root(self, mocker, fake_tc):
        """Test tc is run through sudo for unprivileged users."""
        mocker.patch("tcswitch.emulator.is_root", return_value=False)
        emu = NetworkEmulator(interface="eth0", use_sudo=True)

        emu.apply(DELAY_ONLY)

        assert all(call[0] == "sudo" for call in fake_tc.calls)
        assert fake_tc.qdiscs == {"eth0": ["netem", "delay", "25.0ms"]}

    def test_no_sudo_as_root(self, mocker, fake_tc):
        """Test sudo is not used when already root."""
        mocker.patch("tcswitch.emulator.is_root", return_value=True)
        emu = NetworkEmulator(interface="eth0", use_sudo=True)

        emu.apply(DELAY_ONLY)

        assert all(call[0] == "tc" for call in fake_tc.calls)


class TestClear:
    """Tests for clearing shaping."""

    def test_clear_removes_rules(self, emulator, fake_tc):
        """Test clear deletes the root qdisc."""
        emulator.apply(LOSSY)

        result = emulator.clear()

        assert result.success
        assert fake_tc.qdiscs == {}
        assert emulator.current_profile is None

    def test_clear_without_rules_succeeds(self, emulator, fake_tc):
        """Test clearing an unshaped interface is not an error."""
        result = emulator.clear()

        assert result.success
        assert result.command == "tc qdisc del dev eth0 root"


class TestCommandErrors:
    """Tests for tc invocation failures."""

    def test_timeout(self, mocker):
        """Test a hanging tc becomes a failed result."""
        mocker.patch(
            "tcswitch.emulator.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="tc", timeout=10),
        )
        emu = NetworkEmulator(interface="eth0", use_sudo=False)

        result = emu.apply(LOSSY)

        assert result.returncode == -1
        assert "timed out" in result.output

    def test_tc_missing(self, mocker):
        """Test a missing tc binary becomes a failed result."""
        mocker.patch(
            "tcswitch.emulator.subprocess.run",
            side_effect=FileNotFoundError(2, "No such file or directory", "tc"),
        )
        emu = NetworkEmulator(interface="eth0", use_sudo=False)

        result = emu.apply(LOSSY)

        assert result.returncode == -1
        assert "No such file or directory" in result.output

    def test_clear_never_fails(self, mocker):
        """Test clear swallows tc errors."""
        mocker.patch(
            "tcswitch.emulator.subprocess.run",
            side_effect=FileNotFoundError(2, "No such file or directory", "tc"),
        )
        emu = NetworkEmulator(interface="eth0", use_sudo=False)

        assert emu.clear().success


class TestShapingResult:
    """Tests for ShapingResult."""

    def test_success(self):
        """Test a zero exit status is a success."""
        ShapingResult(command="tc qdisc del dev eth0 root").raise_for_status()

    def test_raise_for_status(self):
        """Test a failure raises ImpairmentError with diagnostics."""
        result = ShapingResult(command="tc qdisc add dev eth0 root netem", returncode=2, output="bad")

        with pytest.raises(ImpairmentError) as exc_info:
            result.raise_for_status()

        assert exc_info.value.returncode == 2
        assert exc_info.value.stderr == "bad"
        assert "exit 2" in str(exc_info.value)


class TestStatus:
    """Tests for status reporting."""

    def test_status_active(self, emulator, fake_tc):
        """Test status reports an installed netem qdisc."""
        emulator.apply(LOSSY)

        status = emulator.get_status()

        assert status["interface"] == "eth0"
        assert status["current_profile"] == "C02"
        assert status["netem_active"] is True

    def test_status_inactive(self, emulator, fake_tc):
        """Test status on an unshaped interface."""
        assert emulator.get_status()["netem_active"] is False


class TestContextManager:
    """Tests for context manager functionality."""

    def test_context_manager_enter(self, mocker):
        """Test entering context manager returns self."""
        emu = NetworkEmulator()
        mocker.patch.object(emu, "clear")

        with emu as ctx:
            assert ctx is emu

    def test_context_manager_clears_on_exit(self, mocker):
        """Test that clear() is called on context exit."""
        emu = NetworkEmulator()
        mock_clear = mocker.patch.object(emu, "clear")

        with emu:
            pass

        mock_clear.assert_called_once()


class TestConvenienceFunctions:
    """Tests for module-level helpers."""

    def test_apply_profile(self, fake_tc):
        """Test one-shot apply."""
        result = apply_profile(DELAY_ONLY, interface="wlan0", use_sudo=False)

        assert result.success
        assert fake_tc.qdiscs == {"wlan0": ["netem", "delay", "25.0ms"]}

    def test_clear_profile(self, fake_tc):
        """Test one-shot clear."""
        apply_profile(DELAY_ONLY, interface="wlan0", use_sudo=False)

        assert clear_profile(interface="wlan0", use_sudo=False).success
        assert fake_tc.qdiscs == {}
