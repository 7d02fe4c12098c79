"""Sendmail wrapper for completion notifications."""

from __future__ import annotations

from email.message import EmailMessage

from bamtofastq.exceptions import ExternalToolError, NotificationError
from bamtofastq.external.base import ExternalTool


class Sendmail(ExternalTool):
    """Deliver a message through the local `sendmail` agent."""

    tool_name = "sendmail"
    version_command = None

    def send(self, message: EmailMessage) -> None:
        """Send `message`; recipients are read from its headers (`-t`)."""
        if not message["To"]:
            raise NotificationError("Message has no recipients")
        cmd = [self.tool_name, "-t"]
        try:
            self.run(cmd, capture_output=True, input_text=message.as_string())
        except ExternalToolError as exc:
            raise NotificationError(f"sendmail could not deliver message: {exc}") from exc
        self.logger.info(f"Notification sent to: {message['To']}")
