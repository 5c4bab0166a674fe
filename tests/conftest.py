from datetime import date
from pathlib import Path

import pytest

import database
from memory_storage import create_memory_storage
from models import Film, Genre, Mpa, User
from services import FilmService, UserService


@pytest.fixture
def tmp_db(tmp_path) -> Path:
    """Returns path to a temporary SQLite database file."""
    return tmp_path / "test.db"


@pytest.fixture(params=["memory", "sqlite"])
async def storage(request, tmp_db):
    """Both backends, so every service test runs against each of them."""
    if request.param == "memory":
        return create_memory_storage()
    await database.init_db(tmp_db)
    return database.create_db_storage(tmp_db)


@pytest.fixture
def film_service(storage) -> FilmService:
    return FilmService(storage)


@pytest.fixture
def user_service(storage) -> UserService:
    return UserService(storage)


def make_film(**overrides) -> Film:
    fields = dict(
        name="Metropolis",
        description="A futuristic city sharply divided between workers and planners.",
        release_date=date(1927, 1, 10),
        duration=153,
        mpa=Mpa(id=1),
        genres=[Genre(id=2)],
    )
    fields.update(overrides)
    return Film(**fields)


def make_user(login: str = "fritz", **overrides) -> User:
    fields = dict(
        email=f"{login}@example.com",
        login=login,
        name=None,
        birthday=date(1990, 5, 17),
    )
    fields.update(overrides)
    return User(**fields)
