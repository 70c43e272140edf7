"""Legal move generation and attack detection.

Pure functions over a ``(Board, AuxState)`` pair. Generation is
pseudo-legal-then-filter: every candidate is played on a scratch copy of the
board and dropped if it leaves the mover's king attacked.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from .board import BB, BK, BN, BP, BQ, BR, WB, WK, WN, WP, WQ, WR, Board
from .errors import AmbiguousPromotion, IllegalMove
from .move import Move, MoveFlag, normalize_promotion
from .piece import BISHOP, KING, KNIGHT, PAWN, QUEEN, ROOK, WHITE, opposite
from .position import AuxState, make_move


PROMOS = ("q", "r", "b", "n")

KNIGHT_DELTAS = ((-1, 2), (1, 2), (-2, 1), (2, 1), (-2, -1), (2, -1), (-1, -2), (1, -2))
KING_DELTAS = ((-1, -1), (0, -1), (1, -1), (-1, 0), (1, 0), (-1, 1), (0, 1), (1, 1))
BISHOP_DIRS = ((-1, -1), (1, -1), (-1, 1), (1, 1))
ROOK_DIRS = ((-1, 0), (1, 0), (0, -1), (0, 1))
QUEEN_DIRS = BISHOP_DIRS + ROOK_DIRS


def _build_steps(deltas: Tuple[Tuple[int, int], ...]) -> List[List[int]]:
    table: List[List[int]] = []
    for sq in range(64):
        f, r = sq % 8, sq // 8
        targets = []
        for df, dr in deltas:
            tf, tr = f + df, r + dr
            if 0 <= tf < 8 and 0 <= tr < 8:
                targets.append(tr * 8 + tf)
        table.append(targets)
    return table


def _build_rays(dirs: Tuple[Tuple[int, int], ...]) -> List[List[List[int]]]:
    table: List[List[List[int]]] = []
    for sq in range(64):
        rays = []
        for df, dr in dirs:
            tf, tr = sq % 8, sq // 8
            ray = []
            while True:
                tf += df
                tr += dr
                if not (0 <= tf < 8 and 0 <= tr < 8):
                    break
                ray.append(tr * 8 + tf)
            rays.append(ray)
        table.append(rays)
    return table


def _to_masks(table: List[List[int]]) -> List[int]:
    masks = []
    for targets in table:
        m = 0
        for sq in targets:
            m |= 1 << sq
        masks.append(m)
    return masks


KNIGHT_TARGETS = _build_steps(KNIGHT_DELTAS)
KING_TARGETS = _build_steps(KING_DELTAS)
KNIGHT_MASKS = _to_masks(KNIGHT_TARGETS)
KING_MASKS = _to_masks(KING_TARGETS)
BISHOP_RAYS = _build_rays(BISHOP_DIRS)
ROOK_RAYS = _build_rays(ROOK_DIRS)
QUEEN_RAYS = _build_rays(QUEEN_DIRS)

_SLIDER_RAYS = {BISHOP: BISHOP_RAYS, ROOK: ROOK_RAYS, QUEEN: QUEEN_RAYS}

# color -> (king square, kingside (right, rook home, must be empty, king path),
#           queenside (right, rook home, must be empty, king path))
_CASTLING = {
    "w": (4, ("K", 7, (5, 6), (5, 6)), ("Q", 0, (1, 2, 3), (3, 2))),
    "b": (60, ("k", 63, (61, 62), (61, 62)), ("q", 56, (57, 58, 59), (59, 58))),
}


# --- Attack detection ---


def is_square_attacked(board: Board, sq: int, by_color: str) -> bool:
    """Return True if ``sq`` is attacked by any piece of ``by_color``.

    Uses the raw per-piece attack patterns (no legality filter), so it is
    valid for king-safety checks on scratch boards.
    """
    bb = board.bb
    f = sq % 8
    if by_color == WHITE:
        pawns, knights, king = bb[WP], bb[WN], bb[WK]
        diag = bb[WB] | bb[WQ]
        ortho = bb[WR] | bb[WQ]
        # White pawns attack upward, so attackers sit one rank below
        if f > 0 and sq - 9 >= 0 and (pawns >> (sq - 9)) & 1:
            return True
        if f < 7 and sq - 7 >= 0 and (pawns >> (sq - 7)) & 1:
            return True
    else:
        pawns, knights, king = bb[BP], bb[BN], bb[BK]
        diag = bb[BB] | bb[BQ]
        ortho = bb[BR] | bb[BQ]
        if f < 7 and sq + 9 <= 63 and (pawns >> (sq + 9)) & 1:
            return True
        if f > 0 and sq + 7 <= 63 and (pawns >> (sq + 7)) & 1:
            return True

    if knights & KNIGHT_MASKS[sq]:
        return True
    if king & KING_MASKS[sq]:
        return True

    occ = board.occupancy()
    if diag:
        for ray in BISHOP_RAYS[sq]:
            for to_sq in ray:
                if (occ >> to_sq) & 1:
                    if (diag >> to_sq) & 1:
                        return True
                    break
    if ortho:
        for ray in ROOK_RAYS[sq]:
            for to_sq in ray:
                if (occ >> to_sq) & 1:
                    if (ortho >> to_sq) & 1:
                        return True
                    break
    return False


def in_check(board: Board, color: str) -> bool:
    """Is ``color``'s king attacked by the opponent?"""
    return is_square_attacked(board, board.find_king(color), opposite(color))


# --- Generation ---


def generate_pseudo_legal_moves(board: Board, aux: AuxState) -> List[Move]:
    """All moves obeying per-piece movement rules for the side to move.

    Castling is only emitted when all of its conditions hold, including the
    attack conditions on the king's path.
    """
    color = aux.side_to_move
    own = board.occupancy(color)
    opp = board.occupancy(opposite(color))
    moves: List[Move] = []

    for sq in board.pieces(color, PAWN):
        _pawn_moves(board, aux, sq, own | opp, opp, moves)

    for sq in board.pieces(color, KNIGHT):
        _step_moves(sq, KNIGHT_TARGETS[sq], own, opp, moves)

    for kind, rays in _SLIDER_RAYS.items():
        for sq in board.pieces(color, kind):
            for ray in rays[sq]:
                for to_sq in ray:
                    if (own >> to_sq) & 1:
                        break
                    if (opp >> to_sq) & 1:
                        moves.append(Move(sq, to_sq, flags=MoveFlag.CAPTURE))
                        break
                    moves.append(Move(sq, to_sq))

    for sq in board.pieces(color, KING):
        _step_moves(sq, KING_TARGETS[sq], own, opp, moves)
        _castling_moves(board, aux, sq, moves)

    return moves


def generate_legal_moves(board: Board, aux: AuxState) -> List[Move]:
    """Return the strictly legal moves for the side to move."""
    color = aux.side_to_move
    legal: List[Move] = []
    for mv in generate_pseudo_legal_moves(board, aux):
        if _keeps_king_safe(board, aux, mv, color):
            legal.append(mv)
    return legal


def has_legal_moves(board: Board, aux: AuxState) -> bool:
    color = aux.side_to_move
    return any(
        _keeps_king_safe(board, aux, mv, color)
        for mv in generate_pseudo_legal_moves(board, aux)
    )


def match_move(
    board: Board,
    aux: AuxState,
    from_sq: int,
    to_sq: int,
    promotion: Optional[str] = None,
) -> Move:
    """Find the legal move with exactly this origin, destination and promotion.

    Raises:
        AmbiguousPromotion: If the move is a legal promotion but no piece was
            given.
        IllegalMove: If no legal move matches.
    """
    try:
        promo = normalize_promotion(promotion)
    except ValueError as e:
        raise IllegalMove(str(e)) from e

    candidates = [
        m for m in generate_legal_moves(board, aux) if m.from_sq == from_sq and m.to_sq == to_sq
    ]
    for m in candidates:
        if m.promotion == promo:
            return m
    if candidates and promo is None:
        raise AmbiguousPromotion("promotion piece required (one of q, r, b, n)")
    raise IllegalMove(f"illegal move: {Move(from_sq, to_sq, promo).to_uci()}")


# --- Per-piece helpers ---


def _keeps_king_safe(board: Board, aux: AuxState, move: Move, color: str) -> bool:
    scratch = board.copy()
    make_move(scratch, aux, move)
    return not in_check(scratch, color)


def _step_moves(sq: int, targets: List[int], own: int, opp: int, moves: List[Move]) -> None:
    for to_sq in targets:
        if (own >> to_sq) & 1:
            continue
        flags = MoveFlag.CAPTURE if (opp >> to_sq) & 1 else MoveFlag.NONE
        moves.append(Move(sq, to_sq, flags=flags))


def _pawn_moves(
    board: Board, aux: AuxState, sq: int, occ: int, opp: int, moves: List[Move]
) -> None:
    white = aux.side_to_move == WHITE
    forward = 8 if white else -8
    start_rank = 1 if white else 6
    last_rank = 7 if white else 0
    f, r = sq % 8, sq // 8

    def add(to_sq: int, flags: MoveFlag) -> None:
        if to_sq // 8 == last_rank:
            for promo in PROMOS:
                moves.append(Move(sq, to_sq, promo, flags))
        else:
            moves.append(Move(sq, to_sq, flags=flags))

    # Pushes
    one = sq + forward
    if 0 <= one <= 63 and not (occ >> one) & 1:
        add(one, MoveFlag.NONE)
        two = one + forward
        if r == start_rank and not (occ >> two) & 1:
            moves.append(Move(sq, two, flags=MoveFlag.DOUBLE_PAWN_PUSH))

    # Captures, including en passant onto the current target
    for df in (-1, 1):
        if not 0 <= f + df < 8:
            continue
        to_sq = one + df
        if not 0 <= to_sq <= 63:
            continue
        if (opp >> to_sq) & 1:
            add(to_sq, MoveFlag.CAPTURE)
        elif to_sq == aux.ep_square and _ep_victim_present(board, aux, to_sq):
            moves.append(Move(sq, to_sq, flags=MoveFlag.CAPTURE | MoveFlag.EN_PASSANT))


def _ep_victim_present(board: Board, aux: AuxState, ep_square: int) -> bool:
    white = aux.side_to_move == WHITE
    victim_sq = ep_square - 8 if white else ep_square + 8
    victims = board.bb[BP] if white else board.bb[WP]
    return bool((victims >> victim_sq) & 1)


def _castling_moves(board: Board, aux: AuxState, king_sq: int, moves: List[Move]) -> None:
    color = aux.side_to_move
    home, kingside, queenside = _CASTLING[color]
    if king_sq != home or not aux.castling:
        return
    opponent = opposite(color)
    rook_bb = board.bb[WR] if color == WHITE else board.bb[BR]
    occ = board.occupancy()
    checked: Optional[bool] = None

    for (right, rook_sq, between, path), flag in (
        (kingside, MoveFlag.CASTLE_KINGSIDE),
        (queenside, MoveFlag.CASTLE_QUEENSIDE),
    ):
        if right not in aux.castling or not (rook_bb >> rook_sq) & 1:
            continue
        if any((occ >> s) & 1 for s in between):
            continue
        if checked is None:
            checked = is_square_attacked(board, king_sq, opponent)
        if checked:
            return
        if any(is_square_attacked(board, s, opponent) for s in path):
            continue
        moves.append(Move(king_sq, path[-1], flags=flag))
