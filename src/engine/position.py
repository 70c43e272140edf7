"""Auxiliary position state and the board transition for a single move.

``make_move`` / ``unmake_move`` are shared by the legality filter (which plays
candidates on a scratch board) and by :class:`~src.engine.game.Game`, so a
move is applied by exactly one set of rules wherever it is played.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .board import Board
from .errors import InvariantViolation
from .move import Move, MoveFlag
from .piece import BLACK, KING, PAWN, ROOK, WHITE, Piece
from .zobrist import compute_hash_from_scratch


STARTING_CASTLING = "KQkq"

# Rook home square -> castling right lost when anything leaves or lands there
ROOK_CORNERS: Dict[int, str] = {0: "Q", 7: "K", 56: "q", 63: "k"}

# King destination -> (rook from, rook to)
CASTLE_ROOK_SQUARES: Dict[int, Tuple[int, int]] = {
    6: (7, 5),
    2: (0, 3),
    62: (63, 61),
    58: (56, 59),
}


@dataclass(frozen=True)
class AuxState:
    """Everything about a position besides piece placement.

    Attributes:
        side_to_move (str): ``"w"`` or ``"b"``.
        castling (str): Subset of ``"KQkq"``, always in that order.
        ep_square (Optional[int]): En-passant target square, set only right
            after a double pawn push.
        halfmove_clock (int): Plies since the last capture or pawn move.
        fullmove_number (int): Starts at 1, incremented after Black moves.
    """

    side_to_move: str = WHITE
    castling: str = STARTING_CASTLING
    ep_square: Optional[int] = None
    halfmove_clock: int = 0
    fullmove_number: int = 1


def captured_square(move: Move, mover: str) -> int:
    """Square of the piece a move captures (differs from ``to_sq`` en passant)."""
    if move.flags & MoveFlag.EN_PASSANT:
        return move.to_sq - 8 if mover == WHITE else move.to_sq + 8
    return move.to_sq


def make_move(board: Board, aux: AuxState, move: Move) -> Tuple[AuxState, Optional[Piece]]:
    """Apply ``move`` to ``board`` in place.

    The move must come from the generator (its flags drive en passant,
    castling and the double-push target). No legality check happens here.

    Returns:
        Tuple[AuxState, Optional[Piece]]: The auxiliary state after the move
            and the captured piece, if any.
    """
    piece = board.piece_at(move.from_sq)
    if piece is None or piece.color != aux.side_to_move:
        raise InvariantViolation(f"no piece of the side to move on {move.from_sq}")

    cap_sq = captured_square(move, piece.color)
    captured = board.piece_at(cap_sq)
    if captured is not None and captured.color == piece.color:
        raise InvariantViolation(f"move {move.to_uci()} captures own piece")

    board.set_piece(move.from_sq, None)
    if captured is not None:
        board.set_piece(cap_sq, None)
    placed = Piece(move.promotion, piece.color) if move.promotion else piece
    board.set_piece(move.to_sq, placed)

    if move.is_castle:
        rook_from, rook_to = CASTLE_ROOK_SQUARES[move.to_sq]
        rook = board.piece_at(rook_from)
        board.set_piece(rook_from, None)
        board.set_piece(rook_to, rook)

    ep_square: Optional[int] = None
    if move.flags & MoveFlag.DOUBLE_PAWN_PUSH:
        ep_square = (move.from_sq + move.to_sq) // 2

    if piece.kind == PAWN or captured is not None:
        halfmove_clock = 0
    else:
        halfmove_clock = aux.halfmove_clock + 1

    next_aux = AuxState(
        side_to_move=BLACK if aux.side_to_move == WHITE else WHITE,
        castling=_update_castling(aux.castling, piece, move),
        ep_square=ep_square,
        halfmove_clock=halfmove_clock,
        fullmove_number=aux.fullmove_number + (1 if aux.side_to_move == BLACK else 0),
    )
    return next_aux, captured


def unmake_move(board: Board, move: Move, captured: Optional[Piece]) -> None:
    """Put the pieces of ``move`` back where they stood before it was made.

    Auxiliary state is not touched: the caller restores the ``AuxState`` it
    saved before :func:`make_move`.
    """
    placed = board.piece_at(move.to_sq)
    if placed is None:
        raise InvariantViolation(f"nothing to take back on {move.to_sq}")
    original = Piece(PAWN, placed.color) if move.promotion else placed

    board.set_piece(move.to_sq, None)
    board.set_piece(move.from_sq, original)
    if captured is not None:
        board.set_piece(captured_square(move, placed.color), captured)

    if move.is_castle:
        rook_from, rook_to = CASTLE_ROOK_SQUARES[move.to_sq]
        rook = board.piece_at(rook_to)
        board.set_piece(rook_to, None)
        board.set_piece(rook_from, rook)


def position_key(board: Board, aux: AuxState) -> int:
    """Repetition key: placement, side to move, castling and ep target."""
    return compute_hash_from_scratch(board, aux)


def _update_castling(castling: str, piece: Piece, move: Move) -> str:
    if not castling:
        return castling
    rights = set(castling)
    if piece.kind == KING:
        rights -= {"K", "Q"} if piece.color == WHITE else {"k", "q"}
    elif piece.kind == ROOK and move.from_sq in ROOK_CORNERS:
        rights.discard(ROOK_CORNERS[move.from_sq])
    # A rook captured on its home square takes its right with it
    if move.to_sq in ROOK_CORNERS:
        rights.discard(ROOK_CORNERS[move.to_sq])
    return "".join(c for c in STARTING_CASTLING if c in rights)
