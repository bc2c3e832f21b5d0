from typing import Any


class SubmissionRejected(Exception):
    """Raised anywhere in the submission pipeline to stop it with an HTTP answer.

    ``message`` is the only text production callers ever see. ``code``,
    ``error`` and ``details`` are surfaced in diagnostic mode only.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        error: str | None = None,
        details: dict[str, Any] | None = None,
        event_id: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.error = error
        self.details = details or {}
        self.event_id = event_id


__all__ = ("SubmissionRejected",)
