from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from src.cli.main import build_config
from src.protocol.http.app import create_app
from src.protocol.http.config import ServerConfig
from src.protocol.http.logging_middleware import game_id_from_path


def test_defaults() -> None:
    config = ServerConfig.from_env({})
    assert config.host == "127.0.0.1"
    assert config.port == 8000
    assert config.log_level == "INFO"
    assert config.cors_origins == ["http://localhost:3000"]


def test_from_env() -> None:
    config = ServerConfig.from_env(
        {
            "CHESSBOARD_HOST": "0.0.0.0",
            "CHESSBOARD_PORT": "9000",
            "CHESSBOARD_LOG_LEVEL": "debug",
            "CHESSBOARD_CORS_ORIGINS": "http://a.test, http://b.test",
        }
    )
    assert config.host == "0.0.0.0"
    assert config.port == 9000
    assert config.log_level == "DEBUG"
    assert config.cors_origins == ["http://a.test", "http://b.test"]


@pytest.mark.parametrize(
    "env",
    [
        {"CHESSBOARD_PORT": "0"},
        {"CHESSBOARD_PORT": "http"},
        {"CHESSBOARD_LOG_LEVEL": "LOUD"},
    ],
)
def test_invalid_env_rejected(env: dict[str, str]) -> None:
    with pytest.raises(ValidationError):
        ServerConfig.from_env(env)


def test_cli_flags_override_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHESSBOARD_PORT", "9000")
    monkeypatch.setenv("CHESSBOARD_HOST", "0.0.0.0")
    config = build_config(["--port", "8123", "--cors-origin", "http://x.test"])
    assert config.port == 8123
    assert config.host == "0.0.0.0"
    assert config.cors_origins == ["http://x.test"]


def test_cors_allows_configured_origin() -> None:
    config = ServerConfig(cors_origins=["http://board.test"])
    client = TestClient(create_app(config))
    r = client.get("/healthz", headers={"Origin": "http://board.test"})
    assert r.headers["access-control-allow-origin"] == "http://board.test"

    r = client.get("/healthz", headers={"Origin": "http://other.test"})
    assert "access-control-allow-origin" not in r.headers


def test_game_id_from_path() -> None:
    assert game_id_from_path("/api/games/abc/state") == "abc"
    assert game_id_from_path("/api/games") is None
    assert game_id_from_path("/healthz") is None
