from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from src.engine.errors import InvariantViolation
from src.protocol.http.app import create_app


def test_error_envelope_for_http_exception() -> None:
    app: FastAPI = create_app()

    @app.get("/boom")
    def boom():  # type: ignore[no-redef]
        raise HTTPException(status_code=400, detail="oops")

    client = TestClient(app)
    r = client.get("/boom")
    assert r.status_code == 400
    body = r.json()
    assert "error" in body
    err = body["error"]
    assert err["code"] == "bad_request"
    assert err["message"] == "oops"
    assert err["type"] == "client_error"
    assert err["request_id"]


def test_invariant_violation_is_internal_error() -> None:
    app: FastAPI = create_app()

    @app.get("/broken")
    def broken():  # type: ignore[no-redef]
        raise InvariantViolation("no white king on board")

    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/broken")
    assert r.status_code == 500
    err = r.json()["error"]
    assert err["code"] == "internal_error"
    assert err["type"] == "server_error"
    # Internal details are not leaked
    assert "king" not in err["message"]


def test_request_id_is_echoed() -> None:
    client = TestClient(create_app())
    r = client.get("/api/games/nope/state", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"
    assert r.json()["error"]["request_id"] == "abc-123"
