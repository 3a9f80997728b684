import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from src.infrastructure.api.middlewares import CredentialForwardingMiddleware

HEADER = "X-ID-Token"


@pytest.fixture
def echo_client():
    app = FastAPI()
    app.add_middleware(
        CredentialForwardingMiddleware,
        cookie_name="idToken",
        header_name=HEADER,
        path_prefixes=("/admin", "/profile"),
    )

    @app.get("/{path:path}")
    async def echo(request: Request):
        return {"token": request.headers.get(HEADER)}

    with TestClient(app) as client:
        yield client


@pytest.mark.parametrize("path", ["/admin", "/admin/users", "/profile", "/profile/settings"])
def test_cookie_is_forwarded_on_guarded_paths(echo_client, path):
    res = echo_client.get(path, headers={"Cookie": "idToken=abc123"})
    assert res.json() == {"token": "abc123"}


@pytest.mark.parametrize("path", ["/", "/login", "/calculators/bmi", "/administrator", "/profiles"])
def test_cookie_is_not_forwarded_elsewhere(echo_client, path):
    res = echo_client.get(path, headers={"Cookie": "idToken=abc123"})
    assert res.json() == {"token": None}


def test_missing_cookie_means_missing_header(echo_client):
    res = echo_client.get("/admin")
    assert res.json() == {"token": None}


def test_client_supplied_header_is_dropped_on_guarded_path(echo_client):
    res = echo_client.get("/admin", headers={HEADER: "forged"})
    assert res.json() == {"token": None}


def test_cookie_wins_over_client_supplied_header(echo_client):
    res = echo_client.get("/profile", headers={HEADER: "forged", "Cookie": "idToken=real"})
    assert res.json() == {"token": "real"}


def test_other_cookies_are_ignored(echo_client):
    res = echo_client.get("/admin", headers={"Cookie": "theme=dark; idToken=t0k"})
    assert res.json() == {"token": "t0k"}


def test_is_guarded_matches_whole_segments():
    mw = CredentialForwardingMiddleware(None, "idToken", HEADER, ("/admin",))
    assert mw.is_guarded("/admin")
    assert mw.is_guarded("/admin/x")
    assert not mw.is_guarded("/adminx")
