from __future__ import annotations

import enum


class BilliardsError(Exception):
    pass


class ConstructionError(BilliardsError, ValueError):
    """Raised when a geometric object or table cannot be built from its inputs."""


class IndeterminateError(BilliardsError, ArithmeticError):
    """inf + inf, 0 * inf, 0 / 0 or inf / inf."""


class DomainError(BilliardsError):
    """
    A query with no defined answer at this exact input.

    Callers iterating a map treat this as "the orbit ends here"; it is an
    expected outcome, not a bug.
    """


class ParallelLinesError(DomainError):
    pass


class SingularPointError(DomainError):
    pass


class InteriorPointError(DomainError):
    pass


class NoIntersectionError(DomainError):
    pass


class NoTangentError(DomainError):
    pass


class UnsupportedError(BilliardsError, NotImplementedError):
    """A table / geometry / flavor combination that is not implemented."""


class Outcome(enum.Enum):
    COMPLETED = "completed"
    PERIODIC = "periodic"
    TRUNCATED = "truncated"
    UNSUPPORTED = "unsupported"


__all__ = [
    "BilliardsError",
    "ConstructionError",
    "DomainError",
    "IndeterminateError",
    "InteriorPointError",
    "NoIntersectionError",
    "NoTangentError",
    "Outcome",
    "ParallelLinesError",
    "SingularPointError",
    "UnsupportedError",
]
