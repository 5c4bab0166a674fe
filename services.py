"""
Domain services.

Every operation checks references and field rules up front and only then
touches storage, so a failed call never leaves a partial change behind.
"""
import logging
from typing import Optional

from exceptions import NotFoundError, ValidationError
from models import Film, Genre, Mpa, User
from storage import Storage
from validation import validate_film, validate_user

logger = logging.getLogger(__name__)

DEFAULT_POPULAR_COUNT = 10


class CatalogService:
    def __init__(self, storage: Storage) -> None:
        self.mpa = storage.mpa
        self.genres = storage.genres

    async def get_all_mpa(self) -> list[Mpa]:
        return await self.mpa.get_all()

    async def get_mpa_by_id(self, mpa_id: int) -> Mpa:
        mpa = await self.mpa.get_by_id(mpa_id)
        if mpa is None:
            raise NotFoundError(f"Classification with id {mpa_id} not found")
        return mpa

    async def get_all_genres(self) -> list[Genre]:
        return await self.genres.get_all()

    async def get_genre_by_id(self, genre_id: int) -> Genre:
        genre = await self.genres.get_by_id(genre_id)
        if genre is None:
            raise NotFoundError(f"Genre with id {genre_id} not found")
        return genre


class UserService:
    def __init__(self, storage: Storage) -> None:
        self.users = storage.users
        self.friendships = storage.friendships

    async def add_user(self, user: User) -> User:
        validate_user(user)
        created = await self.users.add(user)
        logger.info("Created user %d (%s)", created.id, created.login)
        return created

    async def update_user(self, user: User) -> User:
        await self.get_user_by_id(user.id)
        validate_user(user)
        updated = await self.users.update(user)
        logger.info("Updated user %d", updated.id)
        return updated

    async def delete_user(self, user_id: int) -> None:
        await self.get_user_by_id(user_id)
        await self.users.delete(user_id)
        logger.info("Deleted user %d", user_id)

    async def get_all_users(self) -> list[User]:
        return await self.users.get_all()

    async def get_user_by_id(self, user_id: int) -> User:
        user = await self.users.get_by_id(user_id) if user_id is not None else None
        if user is None:
            raise NotFoundError(f"User with id {user_id} not found")
        return user

    async def add_friend(self, user_id: int, friend_id: int) -> None:
        await self.get_user_by_id(user_id)
        await self.get_user_by_id(friend_id)
        await self.friendships.add_friend(user_id, friend_id)
        logger.info("Users %d and %d are now friends", user_id, friend_id)

    async def remove_friend(self, user_id: int, friend_id: int) -> None:
        await self.get_user_by_id(user_id)
        await self.get_user_by_id(friend_id)
        await self.friendships.remove_friend(user_id, friend_id)
        logger.info("Users %d and %d are no longer friends", user_id, friend_id)

    async def get_friends(self, user_id: int) -> list[User]:
        await self.get_user_by_id(user_id)
        return await self.friendships.get_friends(user_id)

    async def get_common_friends(self, user_id: int, other_id: int) -> list[User]:
        await self.get_user_by_id(user_id)
        await self.get_user_by_id(other_id)
        return await self.friendships.get_common_friends(user_id, other_id)


class FilmService:
    def __init__(self, storage: Storage) -> None:
        self.films = storage.films
        self.likes = storage.likes
        self.users = UserService(storage)
        self.catalog = CatalogService(storage)

    async def add_film(self, film: Film) -> Film:
        validate_film(film)
        await self._check_references(film)
        created = await self.films.add(film)
        logger.info("Created film %d (%s)", created.id, created.name)
        return created

    async def update_film(self, film: Film) -> Film:
        await self.get_film_by_id(film.id)
        validate_film(film)
        await self._check_references(film)
        updated = await self.films.update(film)
        logger.info("Updated film %d", updated.id)
        return updated

    async def delete_film(self, film_id: int) -> None:
        await self.get_film_by_id(film_id)
        await self.films.delete(film_id)
        logger.info("Deleted film %d", film_id)

    async def get_all_films(self) -> list[Film]:
        return await self.films.get_all()

    async def get_film_by_id(self, film_id: int) -> Film:
        film = await self.films.get_by_id(film_id) if film_id is not None else None
        if film is None:
            raise NotFoundError(f"Film with id {film_id} not found")
        return film

    async def add_like(self, film_id: int, user_id: int) -> None:
        await self.get_film_by_id(film_id)
        await self.users.get_user_by_id(user_id)
        await self.likes.add_like(film_id, user_id)
        logger.info("User %d liked film %d", user_id, film_id)

    async def remove_like(self, film_id: int, user_id: int) -> None:
        await self.get_film_by_id(film_id)
        await self.users.get_user_by_id(user_id)
        await self.likes.remove_like(film_id, user_id)
        logger.info("User %d unliked film %d", user_id, film_id)

    async def get_popular_films(self, count: Optional[int] = DEFAULT_POPULAR_COUNT) -> list[Film]:
        if count is None:
            count = DEFAULT_POPULAR_COUNT
        if count < 1:
            raise ValidationError("Count must be at least 1")
        return await self.likes.get_popular_films(count)

    async def _check_references(self, film: Film) -> None:
        if film.mpa is not None:
            await self.catalog.get_mpa_by_id(film.mpa.id)
        for genre_id in film.genre_ids:
            await self.catalog.get_genre_by_id(genre_id)
