from .errors import SearchCancelled

class CancelToken:
    """
    Cooperative cancellation flag for one search.
    The search checks it between stages; whoever owns the token
    (usually a DrawingSession) flips it when a newer shape supersedes it.
    """
    def __init__(self):
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "superseded") -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SearchCancelled(f"search cancelled ({self.reason})")
