from __future__ import annotations


class TransitionAborted(Exception):
    """A navigation/transition was deliberately aborted by the application.

    Raised by application code as a normal side effect of navigation; the harness
    swallows it at the rejection-reporting boundary instead of failing the test.
    """


class WaitTimeoutError(TimeoutError):
    def __init__(self, timeout_seconds: float, pending: list[str] | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.pending = list(pending or [])
        detail = f" (pending: {', '.join(self.pending)})" if self.pending else ""
        super().__init__(f"Application did not settle within {timeout_seconds:g}s{detail}")


class HelperNotFoundError(ValueError):
    pass
