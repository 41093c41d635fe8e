"""Domain errors raised by the shortening and resolution services.

Each error carries the HTTP status the outer layer maps it to, so the
exception handlers in ``shortener.main`` stay a single generic function.
"""

__all__ = [
    "ShortenerError",
    "InvalidEncoding",
    "InvalidAlias",
    "InvalidExpiry",
    "AliasConflict",
    "ShortCodeCollision",
    "LinkNotFound",
    "LinkExpired",
]


class ShortenerError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidEncoding(ShortenerError, ValueError):
    """A value cannot be converted to or from the base-62 alphabet."""

    status_code = 400


class InvalidAlias(ShortenerError, ValueError):
    status_code = 400

    def __init__(self, alias: str, reason: str) -> None:
        super().__init__(f"Invalid custom alias '{alias}': {reason}")
        self.alias = alias


class InvalidExpiry(ShortenerError, ValueError):
    """The requested lifetime ends past the largest representable timestamp."""

    status_code = 400

    def __init__(self, expires_in_hours: int) -> None:
        super().__init__(f"expiresInHours is too large: {expires_in_hours}")
        self.expires_in_hours = expires_in_hours


class AliasConflict(ShortenerError):
    """The requested custom alias is already taken."""

    status_code = 409

    def __init__(self, alias: str) -> None:
        super().__init__(f"Custom alias already exists: {alias}")
        self.alias = alias


class ShortCodeCollision(ShortenerError):
    """Generated codes kept colliding with existing custom aliases."""

    status_code = 409

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Could not allocate a free short code after {attempts} attempts")
        self.attempts = attempts


class LinkNotFound(ShortenerError):
    status_code = 404

    def __init__(self, short_code: str) -> None:
        super().__init__(f"URL not found for short code: {short_code}")
        self.short_code = short_code


class LinkExpired(ShortenerError):
    """The link exists but its expiry time has passed."""

    status_code = 410

    def __init__(self, short_code: str) -> None:
        super().__init__(f"URL has expired for short code: {short_code}")
        self.short_code = short_code
