class LeanLogError(Exception):
    """Base class for failures raised by the per-user data access layer."""


class UnauthenticatedError(LeanLogError):
    """Missing, malformed, unknown, or revoked API key."""


class InvalidArgumentError(LeanLogError):
    """Input failed validation (empty name, out-of-range number, bad range)."""


class InvalidDateError(InvalidArgumentError):
    pass


class NotAuthorizedError(LeanLogError):
    """Resource is missing or owned by someone else; the two are indistinguishable."""


class ConflictError(LeanLogError):
    """A unique-constraint race did not settle within the retry budget."""
