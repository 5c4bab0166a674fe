import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

import database
from config import Settings, settings
from exceptions import NotFoundError, ValidationError
from memory_storage import create_memory_storage
from models import ErrorResponse, Film, Genre, Mpa, User
from services import DEFAULT_POPULAR_COUNT, CatalogService, FilmService, UserService
from storage import Storage

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def build_storage(config: Settings) -> Storage:
    if config.storage_backend == "memory":
        return create_memory_storage()
    await database.init_db(config.db_path)
    return database.create_db_storage(config.db_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    storage = await build_storage(settings)
    app.state.film_service = FilmService(storage)
    app.state.user_service = UserService(storage)
    app.state.catalog_service = CatalogService(storage)
    logger.info("Started with %s storage", settings.storage_backend)
    yield


app = FastAPI(lifespan=lifespan)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def get_film_service(request: Request) -> FilmService:
    return request.app.state.film_service


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    logger.warning("Validation failed: %s", exc)
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    logger.warning("Malformed request to %s: %s", request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError):
    logger.warning("Not found: %s", exc)
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
async def health():
    return {"status": "ok"}


# Films


@app.post(
    "/films",
    response_model=Film,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def add_film(film: Film, service: FilmService = Depends(get_film_service)):
    logger.info("Adding film: %s", film.name)
    return await service.add_film(film)


@app.put("/films", response_model=Film, responses=ERROR_RESPONSES)
async def update_film(film: Film, service: FilmService = Depends(get_film_service)):
    logger.info("Updating film %s", film.id)
    return await service.update_film(film)


@app.get("/films", response_model=list[Film])
async def get_all_films(service: FilmService = Depends(get_film_service)):
    return await service.get_all_films()


@app.get("/films/popular", response_model=list[Film], responses=ERROR_RESPONSES)
async def get_popular_films(
    count: int = Query(DEFAULT_POPULAR_COUNT, ge=1),
    service: FilmService = Depends(get_film_service),
):
    logger.info("Fetching %d popular films", count)
    return await service.get_popular_films(count)


@app.get("/films/{film_id}", response_model=Film, responses=ERROR_RESPONSES)
async def get_film(film_id: int, service: FilmService = Depends(get_film_service)):
    return await service.get_film_by_id(film_id)


@app.delete("/films/{film_id}", responses=ERROR_RESPONSES)
async def delete_film(film_id: int, service: FilmService = Depends(get_film_service)):
    logger.info("Deleting film %d", film_id)
    await service.delete_film(film_id)


@app.put("/films/{film_id}/like/{user_id}", responses=ERROR_RESPONSES)
async def add_like(film_id: int, user_id: int, service: FilmService = Depends(get_film_service)):
    logger.info("User %d likes film %d", user_id, film_id)
    await service.add_like(film_id, user_id)


@app.delete("/films/{film_id}/like/{user_id}", responses=ERROR_RESPONSES)
async def remove_like(
    film_id: int, user_id: int, service: FilmService = Depends(get_film_service)
):
    logger.info("User %d removes like from film %d", user_id, film_id)
    await service.remove_like(film_id, user_id)


# Users


@app.post(
    "/users",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def add_user(user: User, service: UserService = Depends(get_user_service)):
    logger.info("Adding user: %s", user.login)
    return await service.add_user(user)


@app.put("/users", response_model=User, responses=ERROR_RESPONSES)
async def update_user(user: User, service: UserService = Depends(get_user_service)):
    logger.info("Updating user %s", user.id)
    return await service.update_user(user)


@app.get("/users", response_model=list[User])
async def get_all_users(service: UserService = Depends(get_user_service)):
    return await service.get_all_users()


@app.get("/users/{user_id}", response_model=User, responses=ERROR_RESPONSES)
async def get_user(user_id: int, service: UserService = Depends(get_user_service)):
    return await service.get_user_by_id(user_id)


@app.delete("/users/{user_id}", responses=ERROR_RESPONSES)
async def delete_user(user_id: int, service: UserService = Depends(get_user_service)):
    logger.info("Deleting user %d", user_id)
    await service.delete_user(user_id)


@app.put("/users/{user_id}/friends/{friend_id}", responses=ERROR_RESPONSES)
async def add_friend(
    user_id: int, friend_id: int, service: UserService = Depends(get_user_service)
):
    logger.info("Adding friend %d to user %d", friend_id, user_id)
    await service.add_friend(user_id, friend_id)


@app.delete("/users/{user_id}/friends/{friend_id}", responses=ERROR_RESPONSES)
async def remove_friend(
    user_id: int, friend_id: int, service: UserService = Depends(get_user_service)
):
    logger.info("Removing friend %d from user %d", friend_id, user_id)
    await service.remove_friend(user_id, friend_id)


@app.get("/users/{user_id}/friends", response_model=list[User], responses=ERROR_RESPONSES)
async def get_friends(user_id: int, service: UserService = Depends(get_user_service)):
    return await service.get_friends(user_id)


@app.get(
    "/users/{user_id}/friends/common/{other_id}",
    response_model=list[User],
    responses=ERROR_RESPONSES,
)
async def get_common_friends(
    user_id: int, other_id: int, service: UserService = Depends(get_user_service)
):
    return await service.get_common_friends(user_id, other_id)


# Catalog


@app.get("/mpa", response_model=list[Mpa])
async def get_all_mpa(service: CatalogService = Depends(get_catalog_service)):
    return await service.get_all_mpa()


@app.get("/mpa/{mpa_id}", response_model=Mpa, responses=ERROR_RESPONSES)
async def get_mpa(mpa_id: int, service: CatalogService = Depends(get_catalog_service)):
    return await service.get_mpa_by_id(mpa_id)


@app.get("/genres", response_model=list[Genre])
async def get_all_genres(service: CatalogService = Depends(get_catalog_service)):
    return await service.get_all_genres()


@app.get("/genres/{genre_id}", response_model=Genre, responses=ERROR_RESPONSES)
async def get_genre(genre_id: int, service: CatalogService = Depends(get_catalog_service)):
    return await service.get_genre_by_id(genre_id)
