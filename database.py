import logging
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from exceptions import NotFoundError
from models import Film, Genre, Mpa, User
from storage import GENRE_SEED, MPA_SEED, Storage

logger = logging.getLogger(__name__)

DB_PATH = Path("data/movieclub.db")

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS mpa (
        mpa_id  INTEGER PRIMARY KEY,
        name    TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS genres (
        genre_id  INTEGER PRIMARY KEY,
        name      TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS films (
        film_id       INTEGER PRIMARY KEY AUTOINCREMENT,
        name          TEXT NOT NULL,
        description   TEXT,
        release_date  TEXT NOT NULL,
        duration      INTEGER NOT NULL,
        mpa_id        INTEGER REFERENCES mpa (mpa_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS film_genres (
        film_id   INTEGER NOT NULL REFERENCES films (film_id) ON DELETE CASCADE,
        genre_id  INTEGER NOT NULL REFERENCES genres (genre_id),
        PRIMARY KEY (film_id, genre_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id   INTEGER PRIMARY KEY AUTOINCREMENT,
        email     TEXT NOT NULL,
        login     TEXT NOT NULL,
        name      TEXT,
        birthday  TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS likes (
        film_id  INTEGER NOT NULL REFERENCES films (film_id) ON DELETE CASCADE,
        user_id  INTEGER NOT NULL REFERENCES users (user_id) ON DELETE CASCADE,
        PRIMARY KEY (film_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS friendships (
        user_id    INTEGER NOT NULL REFERENCES users (user_id) ON DELETE CASCADE,
        friend_id  INTEGER NOT NULL REFERENCES users (user_id) ON DELETE CASCADE,
        PRIMARY KEY (user_id, friend_id)
    )
    """,
]

FILM_SELECT = """
    SELECT f.film_id, f.name, f.description, f.release_date, f.duration,
           f.mpa_id, m.name AS mpa_name,
           (SELECT COUNT(*) FROM likes l WHERE l.film_id = f.film_id) AS likes_count
    FROM films f
    LEFT JOIN mpa m ON f.mpa_id = m.mpa_id
"""


async def init_db(db_path: Path = DB_PATH) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        for statement in SCHEMA:
            await db.execute(statement)
        await db.executemany("INSERT OR IGNORE INTO mpa (mpa_id, name) VALUES (?, ?)", MPA_SEED)
        await db.executemany(
            "INSERT OR IGNORE INTO genres (genre_id, name) VALUES (?, ?)", GENRE_SEED
        )
        await db.commit()
    logger.info("Database ready at %s", db_path)


@asynccontextmanager
async def connect(db_path: Path) -> AsyncIterator[aiosqlite.Connection]:
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        # SQLite leaves foreign keys off unless asked, per connection.
        await db.execute("PRAGMA foreign_keys = ON")
        yield db


def _row_to_film(row: aiosqlite.Row, genres: list[Genre]) -> Film:
    mpa = Mpa(id=row["mpa_id"], name=row["mpa_name"]) if row["mpa_id"] is not None else None
    return Film(
        id=row["film_id"],
        name=row["name"],
        description=row["description"],
        release_date=date.fromisoformat(row["release_date"]),
        duration=row["duration"],
        mpa=mpa,
        genres=genres,
        likes=row["likes_count"],
    )


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(
        id=row["user_id"],
        email=row["email"],
        login=row["login"],
        name=row["name"],
        birthday=date.fromisoformat(row["birthday"]),
    )


async def _fetch_films(db: aiosqlite.Connection, where: str = "", params: tuple = ()) -> list[Film]:
    async with db.execute(f"{FILM_SELECT} {where}", params) as cursor:
        rows = await cursor.fetchall()
    if not rows:
        return []

    film_ids = [row["film_id"] for row in rows]
    placeholders = ", ".join("?" for _ in film_ids)
    genres_by_film: dict[int, list[Genre]] = {film_id: [] for film_id in film_ids}
    async with db.execute(
        f"""
        SELECT fg.film_id, g.genre_id, g.name
        FROM film_genres fg
        JOIN genres g ON g.genre_id = fg.genre_id
        WHERE fg.film_id IN ({placeholders})
        ORDER BY g.genre_id
        """,
        film_ids,
    ) as cursor:
        async for row in cursor:
            genres_by_film[row["film_id"]].append(Genre(id=row["genre_id"], name=row["name"]))

    return [_row_to_film(row, genres_by_film[row["film_id"]]) for row in rows]


async def _replace_film_genres(db: aiosqlite.Connection, film: Film) -> None:
    await db.execute("DELETE FROM film_genres WHERE film_id = ?", (film.id,))
    await db.executemany(
        "INSERT OR IGNORE INTO film_genres (film_id, genre_id) VALUES (?, ?)",
        [(film.id, genre_id) for genre_id in film.genre_ids],
    )


class FilmDbStorage:
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path

    async def add(self, film: Film) -> Film:
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO films (name, description, release_date, duration, mpa_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    film.name,
                    film.description,
                    film.release_date.isoformat(),
                    film.duration,
                    film.mpa.id if film.mpa else None,
                ),
            )
            stored = film.model_copy(update={"id": cursor.lastrowid})
            await _replace_film_genres(db, stored)
            await db.commit()
            return (await _fetch_films(db, "WHERE f.film_id = ?", (stored.id,)))[0]

    async def update(self, film: Film) -> Film:
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE films
                SET name = ?, description = ?, release_date = ?, duration = ?, mpa_id = ?
                WHERE film_id = ?
                """,
                (
                    film.name,
                    film.description,
                    film.release_date.isoformat(),
                    film.duration,
                    film.mpa.id if film.mpa else None,
                    film.id,
                ),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Film with id {film.id} not found")
            await _replace_film_genres(db, film)
            await db.commit()
            return (await _fetch_films(db, "WHERE f.film_id = ?", (film.id,)))[0]

    async def delete(self, film_id: int) -> None:
        async with connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM films WHERE film_id = ?", (film_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"Film with id {film_id} not found")
            await db.commit()

    async def get_by_id(self, film_id: int) -> Optional[Film]:
        async with connect(self.db_path) as db:
            films = await _fetch_films(db, "WHERE f.film_id = ?", (film_id,))
        return films[0] if films else None

    async def get_all(self) -> list[Film]:
        async with connect(self.db_path) as db:
            return await _fetch_films(db, "ORDER BY f.film_id")


class UserDbStorage:
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path

    async def add(self, user: User) -> User:
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                "INSERT INTO users (email, login, name, birthday) VALUES (?, ?, ?, ?)",
                (user.email, user.login, user.name, user.birthday.isoformat()),
            )
            await db.commit()
            return user.model_copy(update={"id": cursor.lastrowid})

    async def update(self, user: User) -> User:
        async with connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE users SET email = ?, login = ?, name = ?, birthday = ?
                WHERE user_id = ?
                """,
                (user.email, user.login, user.name, user.birthday.isoformat(), user.id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"User with id {user.id} not found")
            await db.commit()
        return user.model_copy()

    async def delete(self, user_id: int) -> None:
        async with connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"User with id {user_id} not found")
            await db.commit()

    async def get_by_id(self, user_id: int) -> Optional[User]:
        async with connect(self.db_path) as db:
            async with db.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)) as cursor:
                row = await cursor.fetchone()
        return _row_to_user(row) if row else None

    async def get_all(self) -> list[User]:
        async with connect(self.db_path) as db:
            async with db.execute("SELECT * FROM users ORDER BY user_id") as cursor:
                rows = await cursor.fetchall()
        return [_row_to_user(row) for row in rows]


class LikeDbStorage:
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path

    async def add_like(self, film_id: int, user_id: int) -> None:
        async with connect(self.db_path) as db:
            await db.execute(
                "INSERT OR IGNORE INTO likes (film_id, user_id) VALUES (?, ?)",
                (film_id, user_id),
            )
            await db.commit()

    async def remove_like(self, film_id: int, user_id: int) -> None:
        async with connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM likes WHERE film_id = ? AND user_id = ?",
                (film_id, user_id),
            )
            await db.commit()

    async def get_popular_films(self, count: int) -> list[Film]:
        async with connect(self.db_path) as db:
            return await _fetch_films(
                db, "ORDER BY likes_count DESC, f.film_id ASC LIMIT ?", (count,)
            )


class FriendshipDbStorage:
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path

    async def add_friend(self, user_id: int, friend_id: int) -> None:
        async with connect(self.db_path) as db:
            await db.executemany(
                "INSERT OR IGNORE INTO friendships (user_id, friend_id) VALUES (?, ?)",
                [(user_id, friend_id), (friend_id, user_id)],
            )
            await db.commit()

    async def remove_friend(self, user_id: int, friend_id: int) -> None:
        async with connect(self.db_path) as db:
            await db.execute(
                """
                DELETE FROM friendships
                WHERE (user_id = ? AND friend_id = ?) OR (user_id = ? AND friend_id = ?)
                """,
                (user_id, friend_id, friend_id, user_id),
            )
            await db.commit()

    async def get_friends(self, user_id: int) -> list[User]:
        async with connect(self.db_path) as db:
            async with db.execute(
                """
                SELECT u.* FROM users u
                JOIN friendships f ON u.user_id = f.friend_id
                WHERE f.user_id = ?
                ORDER BY u.user_id
                """,
                (user_id,),
            ) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_user(row) for row in rows]

    async def get_common_friends(self, user_id: int, other_id: int) -> list[User]:
        async with connect(self.db_path) as db:
            async with db.execute(
                """
                SELECT u.* FROM users u
                JOIN friendships f1 ON u.user_id = f1.friend_id
                JOIN friendships f2 ON u.user_id = f2.friend_id
                WHERE f1.user_id = ? AND f2.user_id = ?
                ORDER BY u.user_id
                """,
                (user_id, other_id),
            ) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_user(row) for row in rows]


class MpaDbStorage:
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path

    async def get_by_id(self, mpa_id: int) -> Optional[Mpa]:
        async with connect(self.db_path) as db:
            async with db.execute("SELECT * FROM mpa WHERE mpa_id = ?", (mpa_id,)) as cursor:
                row = await cursor.fetchone()
        return Mpa(id=row["mpa_id"], name=row["name"]) if row else None

    async def get_all(self) -> list[Mpa]:
        async with connect(self.db_path) as db:
            async with db.execute("SELECT * FROM mpa ORDER BY mpa_id") as cursor:
                rows = await cursor.fetchall()
        return [Mpa(id=row["mpa_id"], name=row["name"]) for row in rows]


class GenreDbStorage:
    def __init__(self, db_path: Path = DB_PATH) -> None:
        self.db_path = db_path

    async def get_by_id(self, genre_id: int) -> Optional[Genre]:
        async with connect(self.db_path) as db:
            async with db.execute(
                "SELECT * FROM genres WHERE genre_id = ?", (genre_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return Genre(id=row["genre_id"], name=row["name"]) if row else None

    async def get_all(self) -> list[Genre]:
        async with connect(self.db_path) as db:
            async with db.execute("SELECT * FROM genres ORDER BY genre_id") as cursor:
                rows = await cursor.fetchall()
        return [Genre(id=row["genre_id"], name=row["name"]) for row in rows]


def create_db_storage(db_path: Path = DB_PATH) -> Storage:
    return Storage(
        films=FilmDbStorage(db_path),
        users=UserDbStorage(db_path),
        likes=LikeDbStorage(db_path),
        friendships=FriendshipDbStorage(db_path),
        mpa=MpaDbStorage(db_path),
        genres=GenreDbStorage(db_path),
    )
