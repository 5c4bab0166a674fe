import asyncio
import logging
from typing import Optional

from exceptions import NotFoundError
from models import Film, Genre, Mpa, User
from storage import GENRE_SEED, MPA_SEED, Storage

logger = logging.getLogger(__name__)


class InMemoryDatabase:
    """
    Process-local tables shared by every in-memory store.

    Deleting a film or user cascades to its likes and friendships, the same
    way the SQLite schema does with ON DELETE CASCADE.
    """

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.films: dict[int, Film] = {}
        self.users: dict[int, User] = {}
        self.likes: dict[int, set[int]] = {}  # film_id -> user ids
        self.friendships: dict[int, set[int]] = {}  # user_id -> friend ids
        self.mpa: dict[int, Mpa] = {i: Mpa(id=i, name=n) for i, n in MPA_SEED}
        self.genres: dict[int, Genre] = {i: Genre(id=i, name=n) for i, n in GENRE_SEED}
        self._last_film_id = 0
        self._last_user_id = 0

    def next_film_id(self) -> int:
        self._last_film_id += 1
        return self._last_film_id

    def next_user_id(self) -> int:
        self._last_user_id += 1
        return self._last_user_id

    def read_film(self, film_id: int) -> Optional[Film]:
        stored = self.films.get(film_id)
        if stored is None:
            return None
        film = stored.model_copy(deep=True)
        film.likes = len(self.likes.get(film_id, ()))
        if film.mpa is not None:
            film.mpa = self.mpa.get(film.mpa.id, film.mpa).model_copy()
        genre_ids = dict.fromkeys(g.id for g in film.genres)
        film.genres = [
            self.genres.get(genre_id, Genre(id=genre_id)).model_copy()
            for genre_id in sorted(genre_ids)
        ]
        return film

    def read_user(self, user_id: int) -> Optional[User]:
        stored = self.users.get(user_id)
        return stored.model_copy() if stored is not None else None


class InMemoryFilmStorage:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def add(self, film: Film) -> Film:
        async with self._db.lock:
            film_id = self._db.next_film_id()
            self._db.films[film_id] = film.model_copy(update={"id": film_id, "likes": 0}, deep=True)
            return self._db.read_film(film_id)

    async def update(self, film: Film) -> Film:
        async with self._db.lock:
            if film.id not in self._db.films:
                raise NotFoundError(f"Film with id {film.id} not found")
            self._db.films[film.id] = film.model_copy(update={"likes": 0}, deep=True)
            return self._db.read_film(film.id)

    async def delete(self, film_id: int) -> None:
        async with self._db.lock:
            if film_id not in self._db.films:
                raise NotFoundError(f"Film with id {film_id} not found")
            del self._db.films[film_id]
            self._db.likes.pop(film_id, None)

    async def get_by_id(self, film_id: int) -> Optional[Film]:
        async with self._db.lock:
            return self._db.read_film(film_id)

    async def get_all(self) -> list[Film]:
        async with self._db.lock:
            return [self._db.read_film(film_id) for film_id in self._db.films]


class InMemoryUserStorage:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def add(self, user: User) -> User:
        async with self._db.lock:
            user_id = self._db.next_user_id()
            self._db.users[user_id] = user.model_copy(update={"id": user_id})
            return self._db.read_user(user_id)

    async def update(self, user: User) -> User:
        async with self._db.lock:
            if user.id not in self._db.users:
                raise NotFoundError(f"User with id {user.id} not found")
            self._db.users[user.id] = user.model_copy()
            return self._db.read_user(user.id)

    async def delete(self, user_id: int) -> None:
        async with self._db.lock:
            if user_id not in self._db.users:
                raise NotFoundError(f"User with id {user_id} not found")
            del self._db.users[user_id]
            for likers in self._db.likes.values():
                likers.discard(user_id)
            for friend_id in self._db.friendships.pop(user_id, set()):
                self._db.friendships.get(friend_id, set()).discard(user_id)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        async with self._db.lock:
            return self._db.read_user(user_id)

    async def get_all(self) -> list[User]:
        async with self._db.lock:
            return [self._db.read_user(user_id) for user_id in self._db.users]


class InMemoryLikeStorage:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def add_like(self, film_id: int, user_id: int) -> None:
        async with self._db.lock:
            self._db.likes.setdefault(film_id, set()).add(user_id)

    async def remove_like(self, film_id: int, user_id: int) -> None:
        async with self._db.lock:
            self._db.likes.get(film_id, set()).discard(user_id)

    async def get_popular_films(self, count: int) -> list[Film]:
        async with self._db.lock:
            films = [self._db.read_film(film_id) for film_id in self._db.films]
        films.sort(key=lambda f: (-f.likes, f.id))
        return films[:count]


class InMemoryFriendshipStorage:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def add_friend(self, user_id: int, friend_id: int) -> None:
        async with self._db.lock:
            self._db.friendships.setdefault(user_id, set()).add(friend_id)
            self._db.friendships.setdefault(friend_id, set()).add(user_id)

    async def remove_friend(self, user_id: int, friend_id: int) -> None:
        async with self._db.lock:
            self._db.friendships.get(user_id, set()).discard(friend_id)
            self._db.friendships.get(friend_id, set()).discard(user_id)

    async def get_friends(self, user_id: int) -> list[User]:
        async with self._db.lock:
            return self._users(self._db.friendships.get(user_id, set()))

    async def get_common_friends(self, user_id: int, other_id: int) -> list[User]:
        async with self._db.lock:
            common = self._db.friendships.get(user_id, set()) & self._db.friendships.get(
                other_id, set()
            )
            return self._users(common)

    def _users(self, user_ids: set[int]) -> list[User]:
        return [self._db.read_user(i) for i in sorted(user_ids) if i in self._db.users]


class InMemoryMpaStorage:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def get_by_id(self, mpa_id: int) -> Optional[Mpa]:
        mpa = self._db.mpa.get(mpa_id)
        return mpa.model_copy() if mpa is not None else None

    async def get_all(self) -> list[Mpa]:
        return [self._db.mpa[i].model_copy() for i in sorted(self._db.mpa)]


class InMemoryGenreStorage:
    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db

    async def get_by_id(self, genre_id: int) -> Optional[Genre]:
        genre = self._db.genres.get(genre_id)
        return genre.model_copy() if genre is not None else None

    async def get_all(self) -> list[Genre]:
        return [self._db.genres[i].model_copy() for i in sorted(self._db.genres)]


def create_memory_storage() -> Storage:
    db = InMemoryDatabase()
    logger.info("Using in-memory storage")
    return Storage(
        films=InMemoryFilmStorage(db),
        users=InMemoryUserStorage(db),
        likes=InMemoryLikeStorage(db),
        friendships=InMemoryFriendshipStorage(db),
        mpa=InMemoryMpaStorage(db),
        genres=InMemoryGenreStorage(db),
    )
