from __future__ import annotations

from types import SimpleNamespace

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from daybook.app.core.security import resolve_authenticated_user


class _StubStorage:
    def __init__(self) -> None:
        self.seen_tokens: list[str] = []

    async def get_user_by_session(self, token: str):
        self.seen_tokens.append(token)
        if token == "valid":
            return SimpleNamespace(id=2)
        return None


def _app_with_security(storage: _StubStorage) -> FastAPI:
    app = FastAPI()
    app.state.storage_service = storage

    @app.get("/secure")
    async def secure_endpoint(user_id: int = Depends(resolve_authenticated_user)) -> dict[str, int]:
        return {"user": user_id}

    return app


def test_resolve_authenticated_user_bearer() -> None:
    storage = _StubStorage()
    app = _app_with_security(storage)
    with TestClient(app) as client:
        response = client.get("/secure", headers={"Authorization": "Bearer valid"})
        assert response.status_code == 200
        assert response.json()["user"] == 2
        assert storage.seen_tokens == ["valid"]


def test_resolve_authenticated_user_unknown_token() -> None:
    storage = _StubStorage()
    app = _app_with_security(storage)
    with TestClient(app) as client:
        response = client.get("/secure", headers={"Authorization": "Bearer stale"})
        assert response.status_code == 401
        assert response.json()["detail"] == "invalid or expired session"


def test_resolve_authenticated_user_wrong_scheme() -> None:
    storage = _StubStorage()
    app = _app_with_security(storage)
    with TestClient(app) as client:
        response = client.get("/secure", headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert response.status_code == 401
        assert storage.seen_tokens == []


def test_resolve_authenticated_user_missing() -> None:
    storage = _StubStorage()
    app = _app_with_security(storage)
    with TestClient(app) as client:
        response = client.get("/secure")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
