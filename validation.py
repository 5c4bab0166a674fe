from datetime import date
from typing import Optional

from exceptions import ValidationError
from models import Film, User

# First public film screening, Paris.
CINEMA_BIRTHDAY = date(1895, 12, 28)
MAX_DESCRIPTION_LENGTH = 200


def validate_film(film: Film) -> None:
    if not film.name or not film.name.strip():
        raise ValidationError("Film name must not be empty")
    if film.description is not None and len(film.description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Film description must be at most {MAX_DESCRIPTION_LENGTH} characters"
        )
    if film.release_date is None:
        raise ValidationError("Film release date must be set")
    if film.release_date < CINEMA_BIRTHDAY:
        raise ValidationError("Film release date must not be before 28 December 1895")
    if film.duration is None or film.duration <= 0:
        raise ValidationError("Film duration must be positive")


def validate_user(user: User, today: Optional[date] = None) -> None:
    """Check user fields; `today` pins the clock for the birthday rule."""
    if today is None:
        today = date.today()

    if not user.email or not user.email.strip():
        raise ValidationError("Email must not be empty")
    if "@" not in user.email:
        raise ValidationError("Email must contain the @ symbol")
    if not user.login or not user.login.strip():
        raise ValidationError("Login must not be empty")
    if any(ch.isspace() for ch in user.login):
        raise ValidationError("Login must not contain whitespace")
    if user.birthday is None:
        raise ValidationError("Birthday must be set")
    if user.birthday > today:
        raise ValidationError("Birthday must not be in the future")
