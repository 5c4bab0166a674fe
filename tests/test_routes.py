from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

FILM = {
    "name": "Stalker",
    "description": "A guide leads two men through the Zone.",
    "releaseDate": "1979-05-25",
    "duration": 161,
    "mpa": {"id": 3},
    "genres": [{"id": 2}, {"id": 2}],
}


def _user(login: str) -> dict:
    return {"email": f"{login}@example.com", "login": login, "name": "", "birthday": "1990-01-01"}


@pytest.fixture
def mock_settings(tmp_db):
    settings = MagicMock()
    settings.storage_backend = "memory"
    settings.db_path = tmp_db
    settings.log_level = "INFO"
    return settings


@pytest.fixture
def client(mock_settings):
    with patch("main.settings", mock_settings):
        from main import app

        with TestClient(app) as test_client:
            yield test_client


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_get_film(client):
    response = client.post("/films", json=FILM)
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 1
    assert body["releaseDate"] == "1979-05-25"
    assert body["mpa"] == {"id": 3, "name": "PG-13"}
    assert body["genres"] == [{"id": 2, "name": "Drama"}]
    assert body["likes"] == 0

    response = client.get("/films/1")
    assert response.status_code == 200
    assert response.json()["name"] == "Stalker"


def test_create_film_with_early_release_date_is_bad_request(client):
    response = client.post("/films", json={**FILM, "releaseDate": "1895-12-27"})
    assert response.status_code == 400
    assert "1895" in response.json()["error"]


def test_malformed_body_is_bad_request(client):
    response = client.post("/films", json={**FILM, "duration": "long"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_update_unknown_film_is_not_found(client):
    response = client.put("/films", json={**FILM, "id": 9})
    assert response.status_code == 404
    assert response.json() == {"error": "Film with id 9 not found"}


def test_user_name_defaults_to_login(client):
    response = client.post("/users", json=_user("dziga"))
    assert response.status_code == 201
    assert response.json()["name"] == "dziga"


def test_like_and_popular(client):
    client.post("/films", json=FILM)
    client.post("/films", json={**FILM, "name": "Solaris"})
    client.post("/users", json=_user("andrei"))

    response = client.put("/films/2/like/1")
    assert response.status_code == 200

    response = client.get("/films/popular", params={"count": 1})
    assert response.status_code == 200
    assert [f["name"] for f in response.json()] == ["Solaris"]

    assert client.delete("/films/2/like/1").status_code == 200
    assert client.get("/films/2").json()["likes"] == 0


def test_like_unknown_user_is_not_found(client):
    client.post("/films", json=FILM)
    response = client.put("/films/1/like/5")
    assert response.status_code == 404
    assert response.json()["error"] == "User with id 5 not found"


def test_popular_count_must_be_positive(client):
    assert client.get("/films/popular", params={"count": 0}).status_code == 400


def test_friends_endpoints(client):
    for login in ("a", "b", "c"):
        client.post("/users", json=_user(login))

    assert client.put("/users/1/friends/3").status_code == 200
    assert client.put("/users/2/friends/3").status_code == 200

    friends = client.get("/users/3/friends").json()
    assert [u["login"] for u in friends] == ["a", "b"]

    common = client.get("/users/1/friends/common/2").json()
    assert [u["id"] for u in common] == [3]

    assert client.delete("/users/1/friends/3").status_code == 200
    assert client.get("/users/1/friends").json() == []


def test_delete_user(client):
    client.post("/users", json=_user("a"))
    assert client.delete("/users/1").status_code == 200
    assert client.get("/users/1").status_code == 404
    assert client.get("/users").json() == []


def test_catalog_endpoints(client):
    assert [m["name"] for m in client.get("/mpa").json()] == ["G", "PG", "PG-13", "R", "NC-17"]
    assert client.get("/genres/6").json() == {"id": 6, "name": "Action"}
    assert client.get("/mpa/10").status_code == 404


def test_unexpected_error_is_hidden(mock_settings):
    with patch("main.settings", mock_settings):
        from main import app

        with TestClient(app, raise_server_exceptions=False) as test_client:
            with patch.object(
                app.state.film_service,
                "get_all_films",
                new=AsyncMock(side_effect=RuntimeError("disk on fire")),
            ):
                response = test_client.get("/films")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_sqlite_backend_wiring(mock_settings):
    mock_settings.storage_backend = "sqlite"
    with patch("main.settings", mock_settings):
        from main import app

        with TestClient(app) as test_client:
            response = test_client.post("/users", json=_user("sql"))
            assert response.status_code == 201
            assert test_client.get("/users/1").json()["login"] == "sql"
    assert mock_settings.db_path.exists()
