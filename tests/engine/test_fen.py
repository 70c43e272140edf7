from __future__ import annotations

import pytest

from src.engine.errors import MalformedPosition
from src.engine.game import Game
from src.engine.notation import STARTPOS_FEN, format_fen, parse_fen


def test_startpos_round_trip() -> None:
    board, aux = parse_fen(STARTPOS_FEN)
    assert format_fen(board, aux) == STARTPOS_FEN
    assert Game.new().to_fen() == STARTPOS_FEN


@pytest.mark.parametrize(
    "fen",
    [
        # Mixed pieces and empty squares, some castling rights
        "r1bqkbnr/pppp1ppp/2n5/4p3/3P4/5N2/PPP1PPPP/RNBQKB1R b KQ - 2 3",
        # No castling rights, ep target present on rank 3 or 6
        "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b - e3 0 1",
        "rnbqkbnr/ppp1pppp/8/3pP3/8/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 3",
        # All castling rights
        "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1",
    ],
)
def test_round_trip_various_positions(fen: str) -> None:
    assert Game.from_fen(fen).to_fen() == fen


def test_castling_rights_are_normalized() -> None:
    board, aux = parse_fen("r3k2r/8/8/8/8/8/8/R3K2R w qkQK - 0 1")
    assert aux.castling == "KQkq"
    assert format_fen(board, aux).split()[2] == "KQkq"


def test_aux_fields_parsed() -> None:
    _, aux = parse_fen("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b - e3 7 12")
    assert aux.side_to_move == "b"
    assert aux.castling == ""
    assert aux.ep_square == 20
    assert aux.halfmove_clock == 7
    assert aux.fullmove_number == 12


@pytest.mark.parametrize(
    "fen",
    [
        "",  # empty
        "4k3/8/8/8/8/8/8 w - - 0 1",  # not enough ranks
        "4k3/8/8/8/8/8/8/4K3 w - - 0",  # missing fields
        "4k3/8/8/8/8/8/8/4K3 w - -",  # only four fields
        "4k3/8/8/8/8/8/8/4K3 x - - 0 1",  # bad side to move
        "4k3/8/8/8/8/8/8/4K3 w A - 0 1",  # bad castling
        "4k3/8/8/8/8/8/8/4K3 w KK - 0 1",  # repeated castling right
        "4k3/8/8/8/8/8/8/4K3 w - z9 0 1",  # bad ep square
        "4k3/8/8/8/8/8/8/4K3 w - e3 0 1",  # ep square on the wrong rank
        "4k3/8/8/8/8/8/8/4K3 w - - -1 1",  # bad halfmove
        "4k3/8/8/8/8/8/8/4K3 w - - 0 0",  # bad fullmove
        "4k3/8/8/8/8/8/8/4K3 w - - x 1",  # non-numeric clock
        "9/8/8/8/8/8/8/8 w - - 0 1",  # too many squares
        "4k4/8/8/8/8/8/8/4K3 w - - 0 1",  # rank overflows
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNX w KQkq - 0 1",  # bad piece
        "8/8/8/8/8/8/8/4K3 w - - 0 1",  # black king missing
        "4k3/8/8/8/8/8/8/3KK3 w - - 0 1",  # two white kings
        "P3k3/8/8/8/8/8/8/4K3 w - - 0 1",  # pawn on the last rank
        "4k3/8/8/8/8/8/8/p3K3 w - - 0 1",  # pawn on the first rank
        "4k3/4R3/8/8/8/8/8/4K3 w - - 0 1",  # side not to move is in check
        "4k3/8/8/8/8/8/8/4K2² w - - 0 1",  # non-ASCII digit as empty count
        "4k3/8/8/8/8/8/8/4K3 w - - +5 1",  # signed halfmove
        "4k3/8/8/8/8/8/8/4K3 w - - 0 ١",  # non-ASCII fullmove digit
        "4k3/8/8/8/8/8/P7/3K3R w K - 0 1",  # castling right, king off e1
        "r3k2r/8/8/8/8/8/8/R3K1R1 w KQkq - 0 1",  # castling right, rook off h1
        "1r2k2r/8/8/8/8/8/8/R3K2R b KQkq - 0 1",  # castling right, rook off a8
        "4k3/8/8/8/8/8/8/4K3 w - e6 0 1",  # ep target with no pawn
        "4k3/4p3/8/4p3/8/8/8/4K3 w - e6 0 1",  # ep origin square occupied
        "4k3/8/4n3/4p3/8/8/8/4K3 w - e6 0 1",  # ep square occupied
        "4k3/8/8/4P3/8/8/8/4K3 w - e6 0 1",  # pawn in front is not the opponent's
    ],
)
def test_invalid_fen_raises(fen: str) -> None:
    with pytest.raises(MalformedPosition):
        parse_fen(fen)


def test_malformed_position_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        Game.from_fen("not a fen")


def test_castling_right_kept_only_with_pieces_at_home() -> None:
    # Black's rooks are home; White's kingside rook is not, so only Q is possible
    _, aux = parse_fen("r3k2r/8/8/8/8/8/8/R3K1R1 w Qkq - 0 1")
    assert aux.castling == "Qkq"


def test_en_passant_target_after_double_push() -> None:
    _, aux = parse_fen("4k3/8/8/8/3pP3/8/8/4K3 b - e3 0 1")
    assert aux.ep_square == 20
