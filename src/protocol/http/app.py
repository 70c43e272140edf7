from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, model_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ServerConfig
from .error import (
    engine_error_handler,
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from ...engine.errors import EngineError
from ...engine.game import Game, StatusKind
from ...engine.move import Move, parse_uci, square_to_str, str_to_square
from .session import GameSession, InMemorySessionStore


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    fen: Optional[str] = Field(default=None, description="Start from this FEN instead of the initial position")


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    """A move given as squares (drag-and-drop), as UCI, or as SAN."""

    model_config = ConfigDict(populate_by_name=True)

    from_square: Optional[str] = Field(default=None, alias="from", description="Origin square, e.g. e2")
    to_square: Optional[str] = Field(default=None, alias="to", description="Target square, e.g. e4")
    promotion: Optional[str] = Field(default=None, description="q, r, b or n")
    uci: Optional[str] = Field(default=None, description="UCI move string, e.g. e7e8q")
    san: Optional[str] = Field(default=None, description="SAN move string, e.g. Nf3")

    @model_validator(mode="after")
    def _exactly_one_form(self) -> "MoveRequest":
        squares = self.from_square is not None or self.to_square is not None
        forms = int(squares) + int(self.uci is not None) + int(self.san is not None)
        if forms != 1:
            raise ValueError("give exactly one of from/to, uci or san")
        if squares and (self.from_square is None or self.to_square is None):
            raise ValueError("from and to must be given together")
        return self


class StatusModel(BaseModel):
    kind: str
    text: str
    winner: Optional[str]
    reason: Optional[str]


class HistoryRow(BaseModel):
    number: int
    white: Optional[str]
    black: Optional[str]


class LegalMoveModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uci: str
    from_square: str = Field(alias="from")
    to_square: str = Field(alias="to")
    promotion: Optional[str]
    san: str
    capture: bool


class LegalMovesResponse(BaseModel):
    game_id: str
    moves: List[LegalMoveModel]


class GameStateResponse(BaseModel):
    game_id: str
    fen: str
    turn: str
    legal_moves: list[str]
    status: StatusModel
    in_check: bool
    checkmate: bool
    stalemate: bool
    draw: bool
    last_move: Optional[str]
    move_history: list[str]
    move_history_uci: list[str]
    history_rows: list[HistoryRow]


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    config = config or ServerConfig.from_env()
    app = FastAPI(title="Chessboard API", version="0.1.0")

    # Basic logging setup
    logging.basicConfig(level=config.log_level)

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(EngineError, engine_error_handler)
    app.add_exception_handler(Exception, exception_handler)

    # In-memory session store for games
    store = InMemorySessionStore()
    app.state.store = store

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        game = Game.from_fen(req.fen) if req is not None and req.fen else Game.new()
        game_id = store.create(game)
        logger.info("game created", extra={"game_id": game_id})
        return CreateGameResponse(game_id=game_id, fen=game.to_fen())

    @app.get("/api/games/{game_id}/state", response_model=GameStateResponse)
    async def get_state(game_id: str) -> GameStateResponse:
        session = _require_session(store, game_id)
        with session.lock:
            return _state(game_id, session.game)

    @app.get("/api/games/{game_id}/moves", response_model=LegalMovesResponse)
    async def legal_moves(game_id: str, square: Optional[str] = None) -> LegalMovesResponse:
        session = _require_session(store, game_id)
        origin = _parse_square(square) if square is not None else None
        with session.lock:
            game = session.game
            moves = [_legal_move_model(game, m) for m in game.legal_moves(origin)]
        return LegalMovesResponse(game_id=game_id, moves=moves)

    @app.post("/api/games/{game_id}/move", response_model=GameStateResponse)
    async def make_move(game_id: str, req: MoveRequest) -> GameStateResponse:
        session = _require_session(store, game_id)
        with session.lock:
            game = session.game
            if req.san is not None:
                move = game.parse_san(req.san)
            elif req.uci is not None:
                try:
                    move = parse_uci(req.uci)
                except ValueError as e:
                    raise HTTPException(status_code=400, detail=str(e))
            elif req.from_square is not None and req.to_square is not None:
                move = Move(_parse_square(req.from_square), _parse_square(req.to_square), req.promotion)
            else:
                raise HTTPException(status_code=400, detail="give exactly one of from/to, uci or san")
            applied = game.apply_move(move)
            logger.info(
                "move %s -> %s (success)",
                square_to_str(applied.move.from_sq),
                square_to_str(applied.move.to_sq),
                extra={"game_id": game_id, "san": applied.san},
            )
            return _state(game_id, game)

    @app.post("/api/games/{game_id}/undo", response_model=GameStateResponse)
    async def undo(game_id: str) -> GameStateResponse:
        session = _require_session(store, game_id)
        with session.lock:
            session.game.undo_move()
            logger.info("undo last move", extra={"game_id": game_id})
            return _state(game_id, session.game)

    @app.post("/api/games/{game_id}/reset", response_model=GameStateResponse)
    async def reset(game_id: str) -> GameStateResponse:
        session = _require_session(store, game_id)
        with session.lock:
            session.game.reset()
            logger.info("game reset", extra={"game_id": game_id})
            return _state(game_id, session.game)

    @app.post("/api/games/{game_id}/position", response_model=GameStateResponse)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameStateResponse:
        session = _require_session(store, game_id)
        store.replace_game(game_id, Game.from_fen(req.fen))
        with session.lock:
            return _state(game_id, session.game)

    @app.delete("/api/games/{game_id}")
    async def delete_game(game_id: str) -> Dict[str, str]:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return {"status": "deleted"}

    return app


def _require_session(store: InMemorySessionStore, game_id: str) -> GameSession:
    session = store.get(game_id)
    if session is None:
        raise HTTPException(status_code=404, detail="game not found")
    return session


def _parse_square(name: str) -> int:
    try:
        return str_to_square(name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _legal_move_model(game: Game, move: Move) -> LegalMoveModel:
    return LegalMoveModel(
        uci=move.to_uci(),
        from_square=square_to_str(move.from_sq),
        to_square=square_to_str(move.to_sq),
        promotion=move.promotion,
        san=game.san(move),
        capture=move.is_capture,
    )


def _state(game_id: str, game: Game) -> GameStateResponse:
    status = game.status()
    history_uci = game.move_history_uci()
    return GameStateResponse(
        game_id=game_id,
        fen=game.to_fen(),
        turn=game.turn,
        legal_moves=[m.to_uci() for m in game.legal_moves()],
        status=StatusModel(
            kind=status.kind.value,
            text=status.text,
            winner=status.winner,
            reason=status.reason.value if status.reason else None,
        ),
        in_check=status.in_check,
        checkmate=game.checkmate(),
        stalemate=game.stalemate(),
        draw=status.kind == StatusKind.DRAW,
        last_move=history_uci[-1] if history_uci else None,
        move_history=game.history(),
        move_history_uci=history_uci,
        history_rows=[
            HistoryRow(number=n, white=w, black=b) for n, w, b in game.numbered_history()
        ],
    )


# Default app for non-factory servers
app = create_app()
