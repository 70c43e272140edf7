from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .board import Board
from .errors import GameOver, NoHistory
from .move import Move
from .movegen import generate_legal_moves, has_legal_moves, in_check, match_move
from .notation import STARTPOS_FEN, format_fen, move_to_san, parse_fen, parse_san
from .piece import BISHOP, BLACK, KING, KNIGHT, WHITE, Piece
from .position import AuxState, make_move, position_key, unmake_move


logger = logging.getLogger(__name__)


class StatusKind(str, enum.Enum):
    WHITE_TO_MOVE = "white_to_move"
    BLACK_TO_MOVE = "black_to_move"
    WHITE_IN_CHECK = "white_in_check"
    BLACK_IN_CHECK = "black_in_check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"


class DrawReason(str, enum.Enum):
    FIFTY_MOVE = "fifty_move"
    REPETITION = "repetition"
    INSUFFICIENT_MATERIAL = "insufficient_material"


_DRAW_TEXT = {
    DrawReason.FIFTY_MOVE: "fifty-move rule",
    DrawReason.REPETITION: "threefold repetition",
    DrawReason.INSUFFICIENT_MATERIAL: "insufficient material",
}


def _color_name(color: str) -> str:
    return "White" if color == WHITE else "Black"


@dataclass(frozen=True)
class GameStatus:
    """Classification of the current position for the presentation layer.

    ``winner`` is set only for checkmate, ``reason`` only for draws.
    """

    kind: StatusKind
    winner: Optional[str] = None
    reason: Optional[DrawReason] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (StatusKind.CHECKMATE, StatusKind.STALEMATE, StatusKind.DRAW)

    @property
    def in_check(self) -> bool:
        return self.kind in (
            StatusKind.WHITE_IN_CHECK,
            StatusKind.BLACK_IN_CHECK,
            StatusKind.CHECKMATE,
        )

    @property
    def text(self) -> str:
        """Human readable status line, e.g. ``"Check! Black to move."``."""
        if self.kind == StatusKind.CHECKMATE:
            return f"Checkmate! {_color_name(self.winner or WHITE)} wins."
        if self.kind == StatusKind.STALEMATE:
            return "Stalemate!"
        if self.kind == StatusKind.DRAW:
            return f"Draw! ({_DRAW_TEXT[self.reason]})" if self.reason else "Draw!"
        if self.kind == StatusKind.WHITE_IN_CHECK:
            return "Check! White to move."
        if self.kind == StatusKind.BLACK_IN_CHECK:
            return "Check! Black to move."
        return f"{'White' if self.kind == StatusKind.WHITE_TO_MOVE else 'Black'} to move"


@dataclass(frozen=True)
class UndoRecord:
    """Everything needed to take a move back exactly."""

    move: Move
    aux_before: AuxState
    captured: Optional[Piece]
    san: str


@dataclass(frozen=True)
class AppliedMove:
    """Result of a successful move for the caller: move, SAN, new FEN, status."""

    move: Move
    san: str
    fen: str
    status: GameStatus


def insufficient_material(board: Board) -> bool:
    """K vs K, K+minor vs K, K+B vs K+B with same-coloured bishops."""
    minors: List[Tuple[Piece, int]] = []
    for sq in range(64):
        piece = board.piece_at(sq)
        if piece is None or piece.kind == KING:
            continue
        if piece.kind not in (KNIGHT, BISHOP):
            return False
        minors.append((piece, sq))
        if len(minors) > 2:
            return False
    if len(minors) <= 1:
        return True
    (p1, s1), (p2, s2) = minors
    if p1.kind == p2.kind == BISHOP and p1.color != p2.color:
        return (s1 % 8 + s1 // 8) % 2 == (s2 % 8 + s2 // 8) % 2
    return False


def numbered_history(
    sans: List[str], first_fullmove: int = 1, first_side: str = WHITE
) -> List[Tuple[int, Optional[str], Optional[str]]]:
    """Group SAN moves into ``(move number, white, black)`` rows.

    A game started with Black to move opens with an empty White slot.
    """
    rows: List[Tuple[int, Optional[str], Optional[str]]] = []
    queue: List[Optional[str]] = list(sans)
    if first_side == BLACK and queue:
        queue.insert(0, None)
    for i in range(0, len(queue), 2):
        white = queue[i]
        black = queue[i + 1] if i + 1 < len(queue) else None
        rows.append((first_fullmove + i // 2, white, black))
    return rows


@dataclass
class Game:
    """Game wrapper around a board with helper operations.

    Responsibility: own the board, auxiliary state and undo stack; validate
    and apply moves; classify the position after every change.

    A game is driven by one caller at a time. Hosts running several requests
    concurrently must serialize access per game.
    """

    board: Board
    aux: AuxState = field(default_factory=AuxState)
    undo_stack: List[UndoRecord] = field(default_factory=list)
    repetition: Dict[int, int] = field(default_factory=dict)
    _status: Optional[GameStatus] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def new(cls) -> "Game":
        return cls(board=Board.startpos())

    @classmethod
    def from_fen(cls, fen: str) -> "Game":
        board, aux = parse_fen(fen)
        return cls(board=board, aux=aux)

    def to_fen(self) -> str:
        return format_fen(self.board, self.aux)

    def __post_init__(self) -> None:
        # Seed repetition with current position
        if not self.repetition:
            self.repetition[self.key] = 1
        self._refresh_status()

    # --- Queries ---

    @property
    def key(self) -> int:
        return position_key(self.board, self.aux)

    @property
    def turn(self) -> str:
        return self.aux.side_to_move

    def legal_moves(self, square: Optional[int] = None) -> List[Move]:
        """Legal moves for the side to move, optionally only those from ``square``."""
        moves = generate_legal_moves(self.board, self.aux)
        if square is not None:
            moves = [m for m in moves if m.from_sq == square]
        return moves

    def in_check(self) -> bool:
        return in_check(self.board, self.aux.side_to_move)

    def checkmate(self) -> bool:
        return self.status().kind == StatusKind.CHECKMATE

    def stalemate(self) -> bool:
        return self.status().kind == StatusKind.STALEMATE

    def is_draw(self) -> bool:
        """Draw by fifty-move rule, threefold repetition or insufficient material."""
        return self.draw_reason() is not None

    def draw_reason(self) -> Optional[DrawReason]:
        if insufficient_material(self.board):
            return DrawReason.INSUFFICIENT_MATERIAL
        if self.aux.halfmove_clock >= 100:
            return DrawReason.FIFTY_MOVE
        if self.repetition.get(self.key, 0) >= 3:
            return DrawReason.REPETITION
        return None

    def is_game_over(self) -> bool:
        return self.status().is_terminal

    def status(self) -> GameStatus:
        if self._status is None:
            return self._refresh_status()
        return self._status

    def history(self) -> List[str]:
        """SAN of every move played, oldest first."""
        return [rec.san for rec in self.undo_stack]

    def numbered_history(self) -> List[Tuple[int, Optional[str], Optional[str]]]:
        start = self.undo_stack[0].aux_before if self.undo_stack else self.aux
        return numbered_history(self.history(), start.fullmove_number, start.side_to_move)

    def move_history_uci(self) -> List[str]:
        return [rec.move.to_uci() for rec in self.undo_stack]

    @property
    def last_move(self) -> Optional[Move]:
        return self.undo_stack[-1].move if self.undo_stack else None

    def san(self, move: Move) -> str:
        """SAN of ``move`` in the current position (before it is played)."""
        return move_to_san(move, self.board, self.aux)

    def parse_san(self, san: str) -> Move:
        return parse_san(san, self.board, self.aux)

    # --- Mutations ---

    def apply_move(self, move: Move) -> AppliedMove:
        """Validate ``move`` against the legal set and play it.

        Raises:
            GameOver: If the game already reached a terminal state.
            AmbiguousPromotion: If a promotion piece is required but missing.
            IllegalMove: If no legal move has the same from/to/promotion.
        """
        status = self.status()
        if status.is_terminal:
            raise GameOver(f"game is over: {status.text}")
        legal = match_move(self.board, self.aux, move.from_sq, move.to_sq, move.promotion)
        san = move_to_san(legal, self.board, self.aux)

        aux_before = self.aux
        self.aux, captured = make_move(self.board, aux_before, legal)
        self.undo_stack.append(UndoRecord(legal, aux_before, captured, san))
        key = self.key
        self.repetition[key] = self.repetition.get(key, 0) + 1
        status = self._refresh_status()

        logger.debug("applied %s (%s)", legal.to_uci(), san)
        if status.is_terminal:
            logger.info("game over: %s", status.text)
        return AppliedMove(legal, san, self.to_fen(), status)

    def propose_move(
        self, from_sq: int, to_sq: int, promotion: Optional[str] = None
    ) -> AppliedMove:
        """Boundary entry point for a drag-and-drop move."""
        return self.apply_move(Move(from_sq, to_sq, promotion))

    def undo_move(self) -> Move:
        """Take back the last move, restoring board and auxiliary state exactly.

        Raises:
            NoHistory: If no move has been played.
        """
        if not self.undo_stack:
            raise NoHistory("no moves to undo")
        # Decrement count for current position
        curr = self.key
        if curr in self.repetition:
            self.repetition[curr] -= 1
            if self.repetition[curr] <= 0:
                del self.repetition[curr]
        rec = self.undo_stack.pop()
        unmake_move(self.board, rec.move, rec.captured)
        self.aux = rec.aux_before
        self._refresh_status()
        logger.debug("undid %s", rec.move.to_uci())
        return rec.move

    def reset(self) -> "Game":
        """Return this game to the standard starting position."""
        board, aux = parse_fen(STARTPOS_FEN)
        self.board = board
        self.aux = aux
        self.undo_stack.clear()
        self.repetition.clear()
        self.repetition[self.key] = 1
        self._refresh_status()
        logger.debug("game reset")
        return self

    # --- Internals ---

    def _refresh_status(self) -> GameStatus:
        self._status = self._classify()
        return self._status

    def _classify(self) -> GameStatus:
        side = self.aux.side_to_move
        checked = in_check(self.board, side)
        if not has_legal_moves(self.board, self.aux):
            if checked:
                return GameStatus(StatusKind.CHECKMATE, winner=BLACK if side == WHITE else WHITE)
            return GameStatus(StatusKind.STALEMATE)
        reason = self.draw_reason()
        if reason is not None:
            return GameStatus(StatusKind.DRAW, reason=reason)
        if checked:
            return GameStatus(
                StatusKind.WHITE_IN_CHECK if side == WHITE else StatusKind.BLACK_IN_CHECK
            )
        return GameStatus(StatusKind.WHITE_TO_MOVE if side == WHITE else StatusKind.BLACK_TO_MOVE)
