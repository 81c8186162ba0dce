"""Exceptions raised by the proctop pipeline."""


class ProctopError(Exception):
    """Base class for all proctop errors."""


class SnapshotFailure(ProctopError):
    """The process table could not be enumerated, or enumeration hung."""


class RenderFailure(ProctopError):
    """The display surface could not be set up or drawn to."""


class InvalidMetric(ProctopError):
    """A sampled or aggregated value cannot be ordered (NaN, negative, infinite)."""


class InputPollFailure(ProctopError):
    """Reading keyboard input failed. Transient: retried on the next tick."""
