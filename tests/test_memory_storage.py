from datetime import date

import pytest

from exceptions import NotFoundError
from memory_storage import create_memory_storage
from models import Film, Genre, Mpa, User


@pytest.fixture
def storage():
    return create_memory_storage()


async def test_add_assigns_increasing_ids(storage):
    first = await storage.films.add(Film(name="A", release_date=date(2000, 1, 1), duration=1))
    second = await storage.films.add(Film(name="B", release_date=date(2000, 1, 1), duration=1))
    assert (first.id, second.id) == (1, 2)


async def test_ids_are_not_reused_after_delete(storage):
    user = await storage.users.add(User(email="a@x.com", login="a", birthday=date(2000, 1, 1)))
    await storage.users.delete(user.id)
    again = await storage.users.add(User(email="a@x.com", login="a", birthday=date(2000, 1, 1)))
    assert again.id == user.id + 1


async def test_get_by_id_returns_none_when_absent(storage):
    assert await storage.films.get_by_id(42) is None
    assert await storage.users.get_by_id(42) is None


async def test_update_and_delete_unknown_id_raise(storage):
    with pytest.raises(NotFoundError):
        await storage.films.update(Film(id=7, name="X"))
    with pytest.raises(NotFoundError):
        await storage.users.delete(7)


async def test_stored_film_is_isolated_from_caller(storage):
    film = Film(name="Ran", release_date=date(1985, 6, 1), duration=162, genres=[Genre(id=2)])
    created = await storage.films.add(film)
    film.genres.append(Genre(id=6))
    created.name = "changed"

    fetched = await storage.films.get_by_id(created.id)
    assert fetched.name == "Ran"
    assert fetched.genre_ids == [2]


async def test_catalog_names_resolved_on_read(storage):
    created = await storage.films.add(
        Film(
            name="Up",
            release_date=date(2009, 5, 29),
            duration=96,
            mpa=Mpa(id=2),
            genres=[Genre(id=3), Genre(id=1)],
        )
    )
    assert created.mpa.name == "PG"
    assert [g.name for g in created.genres] == ["Comedy", "Animation"]


async def test_get_all_keeps_insertion_order(storage):
    for login in ("c", "a", "b"):
        await storage.users.add(User(email=f"{login}@x.com", login=login, birthday=date(2000, 1, 1)))
    assert [u.login for u in await storage.users.get_all()] == ["c", "a", "b"]


async def test_deleting_film_drops_its_likes(storage):
    film = await storage.films.add(Film(name="A", release_date=date(2000, 1, 1), duration=1))
    user = await storage.users.add(User(email="a@x.com", login="a", birthday=date(2000, 1, 1)))
    await storage.likes.add_like(film.id, user.id)

    await storage.films.delete(film.id)

    assert await storage.likes.get_popular_films(10) == []
