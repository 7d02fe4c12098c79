"""Tests for the completion report and e-mail notification."""

from pathlib import Path
import sys
from unittest.mock import MagicMock

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bamtofastq.core.notification import (
    REPORT_FILENAME,
    Notifier,
    render_completion_report,
    write_completion_report,
)
from bamtofastq.core.pairing import Layout
from bamtofastq.core.pipeline_types import RunSummary, SampleResult
from bamtofastq.exceptions import NotificationError


def make_summary(**kwargs) -> RunSummary:
    values = dict(
        run_name="run_20260101_120000",
        started="2026-01-01T12:00:00",
        command_line="bamtofastq -i a.bam",
        version="0.1.0",
        output_dir="/data/results",
        profile="local",
        software_versions={"samtools": "1.17"},
    )
    values.update(kwargs)
    return RunSummary(**values)


OK = SampleResult(
    name="a",
    output_name="a",
    succeeded=True,
    layout=Layout.PAIRED,
    outputs=(Path("a.1.fq.gz"), Path("a.2.fq.gz")),
)
FAILED = SampleResult(
    name="b",
    output_name="b",
    succeeded=False,
    failed_stage="region_filter",
    error="Region 'chr3' not found",
)


class TestCompletionReport:
    """Test render_completion_report."""

    def test_successful_run(self):
        text = render_completion_report(make_summary(), [OK])

        assert "Run completed successfully." in text
        assert "a [paired-end]: a.1.fq.gz, a.2.fq.gz" in text
        assert "Failed samples" not in text
        assert "samtools" in text

    def test_failed_sample_listed(self):
        text = render_completion_report(make_summary(), [OK, FAILED])

        assert "Run completed with failures." in text
        assert "2 (1 succeeded, 1 failed)" in text
        assert "b at region_filter: Region 'chr3' not found" in text

    def test_write_report(self, tmp_path):
        path = write_completion_report("hello", tmp_path / "pipeline_info")
        assert path == tmp_path / "pipeline_info" / REPORT_FILENAME
        assert path.read_text() == "hello"


class TestNotifier:
    """Test Notifier recipient selection and delivery."""

    def test_no_recipients_sends_nothing(self):
        sendmail = MagicMock()
        assert Notifier(sendmail).notify(make_summary(), "report", failed=True) is False
        sendmail.send.assert_not_called()

    def test_email_on_fail_only_on_failure(self):
        notifier = Notifier(MagicMock(), email=["a@x.org"], email_on_fail=["b@x.org"])
        assert notifier.recipients(failed=False) == ["a@x.org"]
        assert notifier.recipients(failed=True) == ["a@x.org", "b@x.org"]

    def test_recipient_not_duplicated(self):
        notifier = Notifier(MagicMock(), email=["a@x.org"], email_on_fail=["a@x.org"])
        assert notifier.recipients(failed=True) == ["a@x.org"]

    def test_message_headers(self):
        sendmail = MagicMock()
        notifier = Notifier(sendmail, email=["a@x.org"])

        assert notifier.notify(make_summary(), "report body", failed=True) is True

        message = sendmail.send.call_args.args[0]
        assert message["Subject"] == "[bamtofastq] FAILED: run_20260101_120000"
        assert message["To"] == "a@x.org"
        assert "report body" in message.get_content()

    def test_successful_subject(self):
        notifier = Notifier(None)
        message = notifier.build_message(make_summary(), "x", failed=False, recipients=["a@x.org"])
        assert message["Subject"].startswith("[bamtofastq] Successful")

    def test_missing_sendmail_is_not_fatal(self):
        notifier = Notifier(None, email=["a@x.org"])
        assert notifier.notify(make_summary(), "report", failed=False) is False

    def test_delivery_failure_is_not_fatal(self):
        sendmail = MagicMock()
        sendmail.send.side_effect = NotificationError("boom")
        notifier = Notifier(sendmail, email=["a@x.org"])

        assert notifier.notify(make_summary(), "report", failed=False) is False
