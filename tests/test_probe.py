"""Unit tests for core/probe.py — HostProbe never raises and never half-fills a record."""

import logging

import pytest

from core.errors import StatusQueryError
from core.probe import HostProbe
from tests.fakes import FIXED_NOW


class TestReachability:
    def test_unreachable_returns_none_and_warns(self, fake_source, caplog):
        fake_source.add("srv2")
        fake_source.unreachable.add("srv2")
        with caplog.at_level(logging.WARNING, logger="defenderreport.probe"):
            assert HostProbe(fake_source).probe("srv2") is None
        assert "srv2" in caplog.text

    def test_default_attempts_is_two(self, fake_source):
        fake_source.unreachable.add("srv2")
        HostProbe(fake_source).probe("srv2")
        assert fake_source.ping_calls == ["srv2", "srv2"]

    def test_second_attempt_can_succeed(self, fake_source):
        fake_source.add("flaky")
        answers = iter([False, True])
        fake_source.is_reachable = lambda host, timeout: next(answers)
        assert HostProbe(fake_source).probe("flaky") is not None

    def test_ping_oserror_counts_as_failed_attempt(self, fake_source):
        def boom(host, timeout):
            raise OSError("network down")

        fake_source.is_reachable = boom
        assert HostProbe(fake_source).probe("srv1") is None

    def test_any_ping_error_counts_as_failed_attempt(self, fake_source, caplog):
        def bad_name(host, timeout):
            raise ValueError("bad host name for resolver")

        fake_source.add("srv1")
        fake_source.is_reachable = bad_name
        with caplog.at_level(logging.WARNING, logger="defenderreport.probe"):
            assert HostProbe(fake_source).probe("srv1") is None
        assert "srv1 is not reachable" in caplog.text

    def test_zero_attempts_rejected(self, fake_source):
        with pytest.raises(ValueError):
            HostProbe(fake_source, attempts=0)


class TestStatusMapping:
    def test_fields_mapped_into_record(self, fake_source):
        fake_source.add("srv1", enabled=True, rt=False, age=3, last_scan=FIXED_NOW, threats=[{"ThreatID": 1}])
        record = HostProbe(fake_source).probe("srv1")
        assert record is not None
        assert record.host == "srv1"
        assert record.agent_enabled is True
        assert record.realtime_protection_enabled is False
        assert record.definition_age_days == 3
        assert record.last_full_scan == FIXED_NOW
        assert record.threats_found == 1

    def test_missing_scan_time_kept_absent(self, fake_source):
        fake_source.add("srv1", last_scan=None)
        record = HostProbe(fake_source).probe("srv1")
        assert record.last_full_scan is None

    def test_empty_threat_list_means_no_data(self, fake_source):
        fake_source.add("srv1", threats=[])
        assert HostProbe(fake_source).probe("srv1").threats_found is None

    def test_threat_list_failure_keeps_record(self, fake_source):
        fake_source.add("srv1", threats=StatusQueryError("srv1", "Get-MpThreat not supported"))
        record = HostProbe(fake_source).probe("srv1")
        assert record is not None
        assert record.threats_found is None

    def test_unexpected_threat_error_keeps_record(self, fake_source):
        fake_source.add("srv1", age=4, threats=RuntimeError("Get-MpThreat blew up"))
        record = HostProbe(fake_source).probe("srv1")
        assert record is not None
        assert record.definition_age_days == 4
        assert record.threats_found is None


class TestStatusFailure:
    def test_status_query_error_returns_none(self, fake_source, caplog):
        fake_source.status_errors["srv1"] = StatusQueryError("srv1", "access denied")
        with caplog.at_level(logging.WARNING, logger="defenderreport.probe"):
            assert HostProbe(fake_source).probe("srv1") is None
        assert "srv1" in caplog.text
        assert "access denied" in caplog.text

    def test_unexpected_exception_is_contained(self, fake_source):
        fake_source.status_errors["srv1"] = RuntimeError("kaboom")
        assert HostProbe(fake_source).probe("srv1") is None
