"""Exception hierarchy for podtail."""

from __future__ import annotations


class PodtailError(Exception):
    """Base class for all podtail errors."""


class ListPodsError(PodtailError):
    """Raised when the initial pod listing of a namespace fails."""

    def __init__(self, namespace: str, cause: Exception) -> None:
        super().__init__(f"listing pods in {namespace!r}: {cause}")
        self.namespace = namespace
        self.cause = cause


class ContractViolationError(PodtailError):
    """The watch source returned something that is not a pod listing.

    This is a programming defect, not an operational failure. Nothing in
    podtail catches it; the process exits.
    """


class WatchError(PodtailError):
    """Raised when the event stream of a namespace stops with an unexpected error."""

    def __init__(self, namespace: str, cause: BaseException) -> None:
        super().__init__(f"watching pods in {namespace!r}: {cause}")
        self.namespace = namespace
        self.cause = cause
