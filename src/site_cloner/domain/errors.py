"""Error types raised across the clone workflow."""


class CloneError(Exception):
    """Base class for clone workflow errors."""


class InvalidRequestError(CloneError):
    """Raised when a clone request is rejected before any work starts."""


class RemoteUIError(CloneError):
    """Raised when an action against the remote UI fails."""


class RemoteUITimeout(RemoteUIError):
    """Raised when a bounded wait on the remote UI runs out of time."""
