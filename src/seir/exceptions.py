"""Exceptions raised by the SEIR engine, solver and projector."""


class SEIRError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(SEIRError, ValueError):
    """Invalid parameters, initial state or observed series.

    Raised at construction time, before any stepping happens.
    """


class SequenceError(SEIRError):
    """An engine was advanced out of monotonic day order."""


class InsufficientDataError(SEIRError, ValueError):
    """The solver was given fewer than two observed points."""


class ProjectionCancelled(SEIRError):
    """A projection run was stopped through its cancel flag."""
