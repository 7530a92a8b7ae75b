"""Exceptions raised by the LSP evaluation engine.

InvalidInput is recoverable: the affected leaf is reported as undefined.
DomainError signals corrupt configuration and is always surfaced to the caller.
"""


class LSPError(ValueError):
    """Base exception for evaluation errors."""

    pass


class InvalidInput(LSPError):
    """Raw value is not numeric or an elementary criterion is malformed."""

    pass


class DomainError(LSPError):
    """Weights, operator inputs, CPA parameters or tree structure are invalid."""

    pass
