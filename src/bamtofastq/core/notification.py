"""Completion report and e-mail notification."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from pathlib import Path
from typing import Optional, Sequence

from bamtofastq.core.pipeline_types import RunSummary, SampleResult
from bamtofastq.exceptions import NotificationError
from bamtofastq.external.sendmail import Sendmail
from bamtofastq.utils.logging import get_logger

REPORT_FILENAME = "pipeline_report.txt"


def render_completion_report(summary: RunSummary, results: Sequence[SampleResult]) -> str:
    """Render the plain-text completion report used on disk and as e-mail body."""
    succeeded = [r for r in results if r.succeeded]
    failed = [r for r in results if not r.succeeded]
    status = "completed successfully" if not failed else "completed with failures"

    lines = [
        "=" * 60,
        f"bamtofastq v{summary.version} - {summary.run_name}",
        "=" * 60,
        f"Run {status}.",
        "",
        f"Started:       {summary.started}",
        f"Command line:  {summary.command_line}",
        f"Output dir:    {summary.output_dir}",
        f"Profile:       {summary.profile}",
        f"Samples:       {len(results)} ({len(succeeded)} succeeded, {len(failed)} failed)",
        "",
    ]

    if succeeded:
        lines.append("Succeeded samples:")
        for result in succeeded:
            layout = result.layout.value if result.layout else "unknown"
            outputs = ", ".join(p.name for p in result.outputs) or "-"
            lines.append(f"  - {result.output_name} [{layout}-end]: {outputs}")
        lines.append("")

    if failed:
        lines.append("Failed samples:")
        for result in failed:
            lines.append(f"  - {result.name} at {result.failed_stage}: {result.error}")
        lines.append("")

    if summary.software_versions:
        lines.append("Software versions:")
        for tool, ver in sorted(summary.software_versions.items()):
            lines.append(f"  {tool:<12} {ver or 'unknown'}")
        lines.append("")

    return "\n".join(lines)


def write_completion_report(text: str, pipeline_info_dir: Path) -> Path:
    path = pipeline_info_dir / REPORT_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class Notifier:
    """Send the completion report to the configured recipients.

    `email` recipients always receive the report; `email_on_fail` recipients
    only when at least one sample failed. Delivery problems are logged and
    never fail the run.
    """

    def __init__(
        self,
        sendmail: Optional[Sendmail],
        email: Sequence[str] = (),
        email_on_fail: Sequence[str] = (),
        sender: str = "bamtofastq@localhost",
        logger: Optional[logging.Logger] = None,
    ):
        self.sendmail = sendmail
        self.email = list(email)
        self.email_on_fail = list(email_on_fail)
        self.sender = sender
        self.logger = logger or get_logger(self.__class__.__name__)

    def recipients(self, failed: bool) -> list[str]:
        recipients = list(self.email)
        if failed:
            recipients.extend(r for r in self.email_on_fail if r not in recipients)
        return recipients

    def build_message(
        self, summary: RunSummary, report_text: str, failed: bool, recipients: Sequence[str]
    ) -> EmailMessage:
        message = EmailMessage()
        status = "FAILED" if failed else "Successful"
        message["Subject"] = f"[bamtofastq] {status}: {summary.run_name}"
        message["From"] = self.sender
        message["To"] = ", ".join(recipients)
        message.set_content(report_text)
        return message

    def notify(self, summary: RunSummary, report_text: str, failed: bool) -> bool:
        """Send the report; return True if a message was delivered."""
        recipients = self.recipients(failed)
        if not recipients:
            return False
        if self.sendmail is None:
            self.logger.warning(
                f"Cannot e-mail {', '.join(recipients)}: sendmail is not available"
            )
            return False

        message = self.build_message(summary, report_text, failed, recipients)
        try:
            self.sendmail.send(message)
        except NotificationError as exc:
            self.logger.warning(f"Could not send completion e-mail: {exc}")
            return False
        return True
