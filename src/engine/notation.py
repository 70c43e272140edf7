"""FEN and SAN conversion.

Stateless helpers over a ``(Board, AuxState)`` pair; :class:`~src.engine.game.Game`
wraps them as ``from_fen`` / ``to_fen`` / ``san``.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .board import Board
from .errors import AmbiguousPromotion, IllegalMove, InvariantViolation, MalformedPosition
from .move import Move, MoveFlag, square_to_str, str_to_square
from .movegen import generate_legal_moves, has_legal_moves, in_check, match_move
from .piece import BLACK, KING, PAWN, ROOK, WHITE, Piece, opposite
from .position import AuxState, make_move


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

# Castling right -> (king home, rook home)
_CASTLING_HOMES = {"K": (4, 7), "Q": (4, 0), "k": (60, 63), "q": (60, 56)}

_SAN_RE = re.compile(
    r"^(?P<piece>[NBRQK])?(?P<file>[a-h])?(?P<rank>[1-8])?(?P<capture>x)?"
    r"(?P<to>[a-h][1-8])(?:=?(?P<promo>[NBRQ]))?$"
)


# --- FEN ---


def parse_fen(fen: str) -> Tuple[Board, AuxState]:
    """Parse a Forsyth-Edwards Notation string.

    Args:
        fen (str): Six-field FEN string.

    Returns:
        Tuple[Board, AuxState]: Piece placement and auxiliary state.

    Raises:
        MalformedPosition: If ``fen`` is empty, has the wrong number of
            fields, contains invalid placement, castling rights, en passant
            square or move counters, or describes an impossible position
            (missing/extra king, pawn on a back rank, side not to move in
            check, castling rights without king and rook at home, an en
            passant square not left by a double pawn push).

    Notes:
        Castling rights are normalized to ``KQkq`` order so that
        ``format_fen(*parse_fen(s)) == s`` for any normalized input.
    """
    if not fen or not isinstance(fen, str):
        raise MalformedPosition("FEN must be a non-empty string")
    parts = fen.strip().split()
    if len(parts) != 6:
        raise MalformedPosition("FEN must have 6 fields")
    placement, stm, castling, ep, halfmove, fullmove = parts

    # Piece placement
    ranks = placement.split("/")
    if len(ranks) != 8:
        raise MalformedPosition("FEN board must have 8 ranks")
    board = Board.empty()
    for rank_idx, rank in enumerate(ranks[::-1]):  # start from rank 1 (bottom)
        file_idx = 0
        for ch in rank:
            if ch in "12345678":
                file_idx += int(ch)
            elif ch.isdigit():
                raise MalformedPosition("invalid empty count in FEN rank")
            else:
                try:
                    piece = Piece.from_char(ch)
                except ValueError as e:
                    raise MalformedPosition(f"invalid piece in FEN: {ch!r}") from e
                if file_idx >= 8:
                    raise MalformedPosition("too many squares in FEN rank")
                board.set_piece(rank_idx * 8 + file_idx, piece)
                file_idx += 1
        if file_idx != 8:
            raise MalformedPosition("rank does not sum to 8 squares in FEN")

    # Side to move
    if stm not in (WHITE, BLACK):
        raise MalformedPosition("side to move must be 'w' or 'b'")

    # Castling rights
    if castling == "-":
        castling = ""
    else:
        if any(ch not in "KQkq" for ch in castling) or len(set(castling)) != len(castling):
            raise MalformedPosition("invalid castling rights")
        castling = "".join(c for c in "KQkq" if c in castling)

    # En passant square
    ep_square: Optional[int]
    if ep == "-":
        ep_square = None
    else:
        try:
            ep_square = str_to_square(ep)
        except ValueError as e:
            raise MalformedPosition("invalid en passant square") from e
        expected_rank = 5 if stm == WHITE else 2
        if ep_square // 8 != expected_rank:
            raise MalformedPosition("invalid en passant square rank")

    # Halfmove / fullmove: plain ASCII digits only, so the string round-trips
    if not all(f.isascii() and f.isdecimal() for f in (halfmove, fullmove)):
        raise MalformedPosition("invalid move counters in FEN")
    halfmove_clock = int(halfmove)
    fullmove_number = int(fullmove)
    if fullmove_number <= 0:
        raise MalformedPosition("invalid move counters in FEN")

    aux = AuxState(
        side_to_move=stm,
        castling=castling,
        ep_square=ep_square,
        halfmove_clock=halfmove_clock,
        fullmove_number=fullmove_number,
    )
    _validate_position(board, aux)
    return board, aux


def _validate_position(board: Board, aux: AuxState) -> None:
    for color in (WHITE, BLACK):
        if board.count(color, KING) != 1:
            raise MalformedPosition("each side must have exactly one king")
    back_ranks = 0xFF | (0xFF << 56)
    if (board.bb[Piece(PAWN, WHITE).index] | board.bb[Piece(PAWN, BLACK).index]) & back_ranks:
        raise MalformedPosition("pawns cannot stand on the first or last rank")
    if in_check(board, opposite(aux.side_to_move)):
        raise MalformedPosition("side not to move is in check")
    for right in aux.castling:
        king_sq, rook_sq = _CASTLING_HOMES[right]
        color = WHITE if right.isupper() else BLACK
        if (
            board.piece_at(king_sq) != Piece(KING, color)
            or board.piece_at(rook_sq) != Piece(ROOK, color)
        ):
            raise MalformedPosition(
                f"castling right {right} needs king and rook on their home squares"
            )
    if aux.ep_square is not None:
        _validate_ep_square(board, aux.side_to_move, aux.ep_square)


def _validate_ep_square(board: Board, side_to_move: str, ep: int) -> None:
    # The pawn that just double-stepped crossed ep from the square behind it
    step = 8 if side_to_move == WHITE else -8
    pusher = Piece(PAWN, opposite(side_to_move))
    if (
        board.piece_at(ep) is not None
        or board.piece_at(ep + step) is not None
        or board.piece_at(ep - step) != pusher
    ):
        raise MalformedPosition("en passant square does not follow a double pawn push")


def format_fen(board: Board, aux: AuxState) -> str:
    """Serialize a position into a normalized FEN string."""
    ranks_str: List[str] = []
    for rank_idx in range(7, -1, -1):  # 7..0 maps to ranks 8..1
        run = 0
        row = []
        for file_idx in range(8):
            piece = board.piece_at(rank_idx * 8 + file_idx)
            if piece is None:
                run += 1
            else:
                if run > 0:
                    row.append(str(run))
                    run = 0
                row.append(piece.char)
        if run > 0:
            row.append(str(run))
        ranks_str.append("".join(row))
    placement = "/".join(ranks_str)

    castling = aux.castling if aux.castling else "-"
    ep = square_to_str(aux.ep_square) if aux.ep_square is not None else "-"
    return f"{placement} {aux.side_to_move} {castling} {ep} {aux.halfmove_clock} {aux.fullmove_number}"


# --- SAN ---


def move_to_san(move: Move, board: Board, aux: AuxState) -> str:
    """Render a legal ``move`` in Standard Algebraic Notation.

    ``board`` and ``aux`` describe the position *before* the move. The move is
    simulated on a copy to decide between the ``+`` and ``#`` suffixes.

    Raises:
        IllegalMove: If ``move`` is not legal in the given position.
    """
    move = match_move(board, aux, move.from_sq, move.to_sq, move.promotion)
    piece = board.piece_at(move.from_sq)
    if piece is None:
        raise InvariantViolation(f"legal move {move.to_uci()} starts on an empty square")

    if move.flags & MoveFlag.CASTLE_KINGSIDE:
        san = "O-O"
    elif move.flags & MoveFlag.CASTLE_QUEENSIDE:
        san = "O-O-O"
    else:
        san = ""
        if piece.kind == PAWN:
            if move.is_capture:
                san += "abcdefgh"[move.from_sq % 8]
        else:
            san += piece.kind.upper()
            san += _disambiguation(move, piece, board, aux)
        if move.is_capture:
            san += "x"
        san += square_to_str(move.to_sq)
        if move.promotion:
            san += "=" + move.promotion.upper()

    scratch = board.copy()
    next_aux, _ = make_move(scratch, aux, move)
    if in_check(scratch, next_aux.side_to_move):
        san += "+" if has_legal_moves(scratch, next_aux) else "#"
    return san


def _disambiguation(move: Move, piece: Piece, board: Board, aux: AuxState) -> str:
    rivals = [
        m.from_sq
        for m in generate_legal_moves(board, aux)
        if m.to_sq == move.to_sq and m.from_sq != move.from_sq and board.piece_at(m.from_sq) == piece
    ]
    if not rivals:
        return ""
    file_idx, rank_idx = move.from_sq % 8, move.from_sq // 8
    if all(sq % 8 != file_idx for sq in rivals):
        return "abcdefgh"[file_idx]
    if all(sq // 8 != rank_idx for sq in rivals):
        return str(rank_idx + 1)
    return square_to_str(move.from_sq)


def parse_san(san: str, board: Board, aux: AuxState) -> Move:
    """Resolve a SAN string to the matching legal move.

    Accepts check/annotation suffixes (``+ # ! ?``), ``0-0`` castling and
    promotion written with or without ``=``.

    Raises:
        AmbiguousPromotion: If a pawn reaches the last rank without a piece.
        IllegalMove: If the text is not SAN or matches zero or several legal
            moves.
    """
    clean = san.strip().rstrip("+#!?")
    legal = generate_legal_moves(board, aux)

    if clean in ("O-O", "0-0", "O-O-O", "0-0-0"):
        flag = MoveFlag.CASTLE_QUEENSIDE if clean.count("-") == 2 else MoveFlag.CASTLE_KINGSIDE
        for m in legal:
            if m.flags & flag:
                return m
        raise IllegalMove(f"illegal move: {san}")

    match = _SAN_RE.match(clean)
    if match is None:
        raise IllegalMove(f"not a SAN move: {san!r}")
    kind = match.group("piece").lower() if match.group("piece") else PAWN
    to_sq = str_to_square(match.group("to"))
    from_file = "abcdefgh".index(match.group("file")) if match.group("file") else None
    from_rank = int(match.group("rank")) - 1 if match.group("rank") else None
    promo = match.group("promo").lower() if match.group("promo") else None

    candidates: List[Move] = []
    for m in legal:
        p = board.piece_at(m.from_sq)
        if p is None or p.kind != kind or m.to_sq != to_sq:
            continue
        if from_file is not None and m.from_sq % 8 != from_file:
            continue
        if from_rank is not None and m.from_sq // 8 != from_rank:
            continue
        candidates.append(m)

    exact = [m for m in candidates if m.promotion == promo]
    if len(exact) == 1:
        return exact[0]
    if not exact and promo is None and candidates and all(m.promotion for m in candidates):
        raise AmbiguousPromotion(f"promotion piece required: {san}")
    if not exact:
        raise IllegalMove(f"illegal move: {san}")
    raise IllegalMove(f"ambiguous move: {san}")
