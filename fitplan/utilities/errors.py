"""Error taxonomy shared by the stores, the ledger, the editor and the AI client."""


class FitplanError(Exception):
    """Base class for every failure raised by the plan state layer."""

    kind = "error"


class ValidationError(FitplanError, ValueError):
    """Caller passed malformed input (empty prompt, empty selection, bad index)."""

    kind = "validation"


class TransportFailure(FitplanError):
    """Remote store or generation service could not be reached."""

    kind = "transport"


class StoreWriteFailure(TransportFailure):
    """A persistence write failed; the local change has already been rolled back."""

    kind = "store_write"


class GenerationFailure(FitplanError):
    """The AI response could not be turned into a valid plan candidate."""

    kind = "generation"


class NotFound(FitplanError, KeyError):
    """Operation referenced a plan id absent from the store."""

    kind = "not_found"

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else "not found"


__all__ = [
    'FitplanError', 'ValidationError', 'TransportFailure', 'StoreWriteFailure',
    'GenerationFailure', 'NotFound',
]
