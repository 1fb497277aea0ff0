"""Render log records as GitHub Actions workflow commands."""

import logging


class GitHubActionsFormatter(logging.Formatter):
    """
    Prefix records with ``::error ::`` / ``::warning ::`` / ``::notice ::`` so the
    Actions runner turns them into annotations on the run summary.

    A record becomes a notice only when logged with ``extra={"annotation": "notice"}``.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            command = "error"
        elif record.levelno >= logging.WARNING:
            command = "warning"
        else:
            command = getattr(record, "annotation", None)

        if command not in ("error", "warning", "notice"):
            return message

        # Workflow commands are single line; continuation lines are escaped.
        escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"::{command} ::{escaped}"
