from __future__ import annotations


class QuadratureError(ValueError):
    """Base class for invalid quadrature inputs."""


class UnsupportedFamilyError(QuadratureError):
    pass


class InvalidOrderError(QuadratureError):
    pass


class EmptyRuleListError(QuadratureError):
    pass


class DimensionMismatchError(QuadratureError):
    pass


class NotPositiveSemiDefiniteError(QuadratureError):
    pass
