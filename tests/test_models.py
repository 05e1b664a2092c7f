"""Tests for data models."""
import pytest

from lxdhost.models import ContainerInfo, ContainerState, InstallOutcome, ProvisionReport, ProxyRule, StepResult


class TestProxyRule:
    def test_listen_port(self):
        rule = ProxyRule("clpadminport", "tcp:0.0.0.0:8443", "tcp:127.0.0.1:8443")

        assert rule.listen_port == 8443
        assert rule.device_args() == [
            "clpadminport", "proxy", "listen=tcp:0.0.0.0:8443", "connect=tcp:127.0.0.1:8443",
        ]

    @pytest.mark.parametrize("listen", [
        "80", "0.0.0.0:80", "", "tcp:0.0.0.0:80-90", "tcp:0.0.0.0:http", "tcp:0.0.0.0:0",
    ])
    def test_rejects_bad_address(self, listen):
        with pytest.raises(ValueError):
            ProxyRule("web", listen, "tcp:127.0.0.1:80")

    def test_requires_name(self):
        with pytest.raises(ValueError):
            ProxyRule("", "tcp:0.0.0.0:80", "tcp:127.0.0.1:80")


class TestResults:
    def test_report_tracks_first_failure(self):
        report = ProvisionReport()
        report.add(StepResult.success("a", changed=True))
        report.add(StepResult.failure("b", "boom"))

        assert not report.succeeded
        assert report.failed_step.name == "b"
        assert [s.name for s in report.changed_steps] == ["a"]

    def test_empty_report_succeeds(self):
        assert ProvisionReport().succeeded

    def test_step_result_truthiness(self):
        assert StepResult.success("ok")
        assert not StepResult.failure("bad", "reason")


class TestContainerModels:
    def test_is_running(self):
        assert ContainerInfo("c", ContainerState.RUNNING).is_running
        assert not ContainerInfo("c", ContainerState.STOPPED).is_running

    def test_install_outcome_listening(self):
        assert InstallOutcome.ALREADY_INSTALLED.is_listening
        assert InstallOutcome.PROBED_LISTENING.is_listening
        assert not InstallOutcome.PROBED_NOT_LISTENING.is_listening
        assert not InstallOutcome.UNKNOWN.is_listening
