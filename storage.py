"""
Contracts shared by the in-memory and SQLite backends.

Services only talk to these; anything that satisfies them can be plugged in
by `main.build_storage`.
"""
from dataclasses import dataclass
from typing import Optional, Protocol

from models import Film, Genre, Mpa, User


class FilmStorage(Protocol):
    async def add(self, film: Film) -> Film: ...

    async def update(self, film: Film) -> Film: ...

    async def delete(self, film_id: int) -> None: ...

    async def get_by_id(self, film_id: int) -> Optional[Film]: ...

    async def get_all(self) -> list[Film]: ...


class UserStorage(Protocol):
    async def add(self, user: User) -> User: ...

    async def update(self, user: User) -> User: ...

    async def delete(self, user_id: int) -> None: ...

    async def get_by_id(self, user_id: int) -> Optional[User]: ...

    async def get_all(self) -> list[User]: ...


class LikeStorage(Protocol):
    async def add_like(self, film_id: int, user_id: int) -> None: ...

    async def remove_like(self, film_id: int, user_id: int) -> None: ...

    async def get_popular_films(self, count: int) -> list[Film]: ...


class FriendshipStorage(Protocol):
    async def add_friend(self, user_id: int, friend_id: int) -> None: ...

    async def remove_friend(self, user_id: int, friend_id: int) -> None: ...

    async def get_friends(self, user_id: int) -> list[User]: ...

    async def get_common_friends(self, user_id: int, other_id: int) -> list[User]: ...


class MpaStorage(Protocol):
    async def get_by_id(self, mpa_id: int) -> Optional[Mpa]: ...

    async def get_all(self) -> list[Mpa]: ...


class GenreStorage(Protocol):
    async def get_by_id(self, genre_id: int) -> Optional[Genre]: ...

    async def get_all(self) -> list[Genre]: ...


@dataclass
class Storage:
    films: FilmStorage
    users: UserStorage
    likes: LikeStorage
    friendships: FriendshipStorage
    mpa: MpaStorage
    genres: GenreStorage


MPA_SEED: list[tuple[int, str]] = [
    (1, "G"),
    (2, "PG"),
    (3, "PG-13"),
    (4, "R"),
    (5, "NC-17"),
]

GENRE_SEED: list[tuple[int, str]] = [
    (1, "Comedy"),
    (2, "Drama"),
    (3, "Animation"),
    (4, "Thriller"),
    (5, "Documentary"),
    (6, "Action"),
]
