class MovieClubError(Exception):
    """Base class for errors raised by the domain layer."""


class ValidationError(MovieClubError):
    """Client-supplied data breaks a field rule."""


class NotFoundError(MovieClubError):
    """A referenced film, user, classification or genre does not exist."""
