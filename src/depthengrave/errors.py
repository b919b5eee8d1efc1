"""Exception hierarchy for the engraving engine.

Every engine failure derives from :class:`EngravingError`.  Validation
errors also derive from the matching builtin so callers that only know
``ValueError`` / ``LookupError`` still catch them.

:class:`Cancelled` is deliberately *not* an ``EngravingError``: a superseded
or aborted request is a normal terminal outcome, not a failure.
"""

from __future__ import annotations


class EngravingError(Exception):
    """Base class for all engine failures."""


class InvalidInput(EngravingError, ValueError):
    """Malformed image or settings (zero-sized image, bad custom curve, ...)."""


class InvalidSettings(EngravingError, ValueError):
    """Out-of-range or contradictory depth / toolpath parameters."""


class ProfileNotFound(EngravingError, LookupError):
    """A laser or material profile name is not registered."""


class InvalidMaterial(EngravingError, ValueError):
    """Non-physical material constants (e.g. refractive index <= 0)."""


class PlanningError(EngravingError, RuntimeError):
    """A pass worker failed; the whole plan is aborted."""


class Cancelled(Exception):
    """The request was superseded or explicitly aborted."""
