"""
Exceptions raised by the portal's data layer.

The HTTP layer maps each of these to a status code; anything else is a bug.
"""


class PortalError(Exception):
    """Base exception for all portal errors."""
    pass


class InvalidStatusError(PortalError):
    """Status value outside the known problem statement workflow."""
    pass


class SubmissionsClosedError(PortalError):
    """No event is currently accepting problem statements."""
    pass


class ForbiddenError(PortalError):
    """Caller lacks the role required for the operation."""
    pass
