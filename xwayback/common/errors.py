"""
Launcher error taxonomy.

Every failure in the startup sequence is fatal. Components raise one of the
classes below at the failure site; `xwayback.cli.main` logs the message once
and exits with status 1.
"""

from __future__ import annotations

__all__ = [
    "XwaybackError",
    "UsageError",
    "ExecutableError",
    "ResourceError",
    "ProtocolError",
]


class XwaybackError(Exception):
    """Base class for fatal launcher errors."""


class UsageError(XwaybackError):
    """Malformed command line or configuration input."""


class ExecutableError(XwaybackError):
    """A collaborator executable is missing or not executable."""


class ResourceError(XwaybackError):
    """Socket-pair creation or process spawn failed."""

    @classmethod
    def fromOSError_create(cls, action: str, error: OSError) -> "ResourceError":
        """
        Build a resource error carrying the underlying OS error text.

        Args:
            action: Short description of what was being attempted.
            error: Underlying OS error.

        Returns:
            ResourceError with a combined message.
        """
        detail: str = error.strerror or str(error)
        return cls(f"{action}: {detail}")


class ProtocolError(XwaybackError):
    """Bootstrap connection failure or no usable outputs."""
