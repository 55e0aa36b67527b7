"""Error taxonomy shared by the stores and the learning view service."""

from __future__ import annotations


class NotFound(LookupError):
    """A learner profile or lesson is absent from its store."""


class UpstreamUnavailable(RuntimeError):
    """A backing store could not be reached; callers must not guess its contents."""


__all__ = ["NotFound", "UpstreamUnavailable"]
