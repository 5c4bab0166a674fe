from datetime import date

from models import Film, Genre, Mpa, User


def test_film_defaults():
    film = Film(name="Nosferatu")
    assert film.id is None
    assert film.genres == []
    assert film.mpa is None
    assert film.likes == 0


def test_film_genres_deduplicated_by_id():
    film = Film(name="Alien", genres=[Genre(id=4), Genre(id=6), Genre(id=4, name="Thriller")])
    assert film.genre_ids == [4, 6]


def test_film_null_genres_become_empty():
    film = Film.model_validate({"name": "Alien", "genres": None})
    assert film.genres == []


def test_film_accepts_camel_case_release_date():
    film = Film.model_validate({"name": "Up", "releaseDate": "2009-05-29", "mpa": {"id": 2}})
    assert film.release_date == date(2009, 5, 29)
    assert film.mpa == Mpa(id=2)
    assert film.model_dump(by_alias=True)["releaseDate"] == date(2009, 5, 29)


def test_user_display_name_falls_back_to_login():
    assert User(login="neo", name=None).display_name == "neo"
    assert User(login="neo", name="   ").display_name == "neo"
    assert User(login="neo", name="Thomas").display_name == "Thomas"


def test_user_name_serialized_as_display_name_but_stored_as_given():
    user = User(email="neo@matrix.io", login="neo", name="", birthday=date(1971, 9, 13))
    assert user.model_dump()["name"] == "neo"
    assert user.name == ""
