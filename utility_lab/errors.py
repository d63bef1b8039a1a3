"""Error taxonomy shared by capabilities and the optimization engine."""

from __future__ import annotations


class UtilityLabError(RuntimeError):
    """Base class for all errors raised by the package."""


class GenerationExhausted(UtilityLabError):
    """Raised by a generator that cannot produce a candidate.

    Inside a blind-generation run this only consumes one attempt of the
    budget; it becomes fatal when no attempt succeeds.
    """


class InapplicableModification(UtilityLabError):
    """Raised when a modifier's precondition does not hold.

    The candidate is left unchanged and the caller picks another modifier or
    skips the iteration.
    """


class UndoTokenError(UtilityLabError):
    """Raised when an undo token is reused after undo or routed to a foreign modifier."""


class UtilityContractError(UtilityLabError):
    """Raised when a utility fails to produce a finite score for a candidate."""

    def __init__(self, utility: object, reason: str) -> None:
        super().__init__(f"utility {utility!r} violated its contract: {reason}")
        self.utility = utility
        self.reason = reason


class RunFailed(UtilityLabError):
    """Raised when a run ends without a single viable candidate."""

    def __init__(self, attempts: int, message: str | None = None) -> None:
        text = message or (
            f"generation exhausted with zero viable candidates after {attempts} attempt(s)"
        )
        super().__init__(text)
        self.attempts = attempts


__all__ = [
    "GenerationExhausted",
    "InapplicableModification",
    "RunFailed",
    "UndoTokenError",
    "UtilityContractError",
    "UtilityLabError",
]
