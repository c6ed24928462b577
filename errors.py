class GastosError(ValueError):
    """Base for conditions the caller is expected to handle and report."""


class InvalidInput(GastosError):
    pass


class NotFound(GastosError):
    pass


class Conflict(GastosError):
    pass


class Forbidden(GastosError):
    """The record exists but belongs to another user."""
