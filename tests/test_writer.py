"""Unit tests for output/writer.py — file naming, per-artifact isolation, mail hand-off."""

from datetime import datetime
from unittest.mock import MagicMock, patch

from core.errors import MailDeliveryError
from core.formatter import render_host as real_render_host
from output.writer import ReportWriter, report_filename
from tests.fakes import FIXED_NOW, make_record


class TestReportFilename:
    def test_sortable_timestamp(self):
        assert report_filename("srv1", datetime(2024, 1, 2, 3, 4, 5)) == "DefenderStatus-srv1-2024-01-02-03-04-05.html"

    def test_overview_name(self):
        assert report_filename("Overview", FIXED_NOW) == "DefenderStatus-Overview-2024-05-20-09-30-00.html"

    def test_unsafe_characters_replaced(self):
        name = report_filename("..\\evil/host:1", FIXED_NOW)
        assert name == "DefenderStatus-evil_host_1-2024-05-20-09-30-00.html"


class TestPublish:
    def test_writes_host_and_overview_files(self, tmp_path):
        out = tmp_path / "reports"
        summary = ReportWriter(out).publish([make_record("srv1"), make_record("srv2")], generated_at=FIXED_NOW)
        names = sorted(p.name for p in out.iterdir())
        assert names == [
            "DefenderStatus-Overview-2024-05-20-09-30-00.html",
            "DefenderStatus-srv1-2024-05-20-09-30-00.html",
            "DefenderStatus-srv2-2024-05-20-09-30-00.html",
        ]
        assert summary.ok
        assert len(summary.written) == 3

    def test_creates_missing_directory(self, tmp_path):
        out = tmp_path / "a" / "b"
        ReportWriter(out).publish([make_record()], generated_at=FIXED_NOW)
        assert out.is_dir()

    def test_failed_write_does_not_stop_others(self, tmp_path):
        writer = ReportWriter(tmp_path)
        real_write = writer.write

        def flaky(name, document, timestamp):
            if name == "srv1":
                raise OSError("disk full")
            return real_write(name, document, timestamp)

        with patch.object(writer, "write", side_effect=flaky):
            summary = writer.publish([make_record("srv1"), make_record("srv2")], generated_at=FIXED_NOW)

        assert summary.failed == ["srv1"]
        assert len(summary.written) == 2
        assert not summary.ok

    def test_render_failure_does_not_stop_others(self, tmp_path):
        def flaky(record, generated_at):
            if record.host == "srv1":
                raise ValueError("cannot render")
            return real_render_host(record, generated_at)

        with patch("output.writer.render_host", side_effect=flaky):
            summary = ReportWriter(tmp_path).publish([make_record("srv1"), make_record("srv2")], generated_at=FIXED_NOW)

        assert summary.failed == ["srv1"]
        assert sorted(p.name for p in summary.written) == [
            "DefenderStatus-Overview-2024-05-20-09-30-00.html",
            "DefenderStatus-srv2-2024-05-20-09-30-00.html",
        ]

    def test_duplicate_hosts_get_numbered_files(self, tmp_path):
        summary = ReportWriter(tmp_path).publish([make_record("srv1"), make_record("srv1")], generated_at=FIXED_NOW)
        names = sorted(p.name for p in summary.written)
        assert names == [
            "DefenderStatus-Overview-2024-05-20-09-30-00.html",
            "DefenderStatus-srv1-2-2024-05-20-09-30-00.html",
            "DefenderStatus-srv1-2024-05-20-09-30-00.html",
        ]
        assert len(set(summary.written)) == 3

    def test_invalid_directory_reports_every_artifact(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        summary = ReportWriter(blocker).publish([make_record()], generated_at=FIXED_NOW)
        assert summary.failed == ["srv1", "Overview"]


class TestMail:
    def test_overview_mailed(self, tmp_path):
        mailer = MagicMock()
        summary = ReportWriter(tmp_path, mailer=mailer, subject="Daily").publish([make_record()], generated_at=FIXED_NOW)
        subject, body = mailer.send.call_args[0]
        assert subject == "Daily"
        assert "Defender Status Overview" in body
        assert summary.mailed

    def test_mail_failure_keeps_files(self, tmp_path):
        mailer = MagicMock()
        mailer.send.side_effect = MailDeliveryError("relay refused")
        summary = ReportWriter(tmp_path, mailer=mailer).publish([make_record()], generated_at=FIXED_NOW)
        assert not summary.mailed
        assert len(list(tmp_path.iterdir())) == 2

    def test_no_mailer_no_mail(self, tmp_path):
        summary = ReportWriter(tmp_path).publish([make_record()], generated_at=FIXED_NOW)
        assert summary.mailed is False
