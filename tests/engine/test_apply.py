from __future__ import annotations

import pytest

from src.engine.board import WR
from src.engine.errors import AmbiguousPromotion, GameOver, IllegalMove
from src.engine.game import Game, StatusKind
from src.engine.move import Move, str_to_square
from src.engine.notation import STARTPOS_FEN


def test_apply_updates_position_and_reports_result() -> None:
    g = Game.new()
    mv = Move(str_to_square("e2"), str_to_square("e4"))

    # Sanity: move must be legal
    assert mv in g.legal_moves()

    applied = g.apply_move(mv)

    expected = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"
    assert applied.fen == expected
    assert g.to_fen() == expected
    assert applied.san == "e4"
    assert applied.status.kind == StatusKind.BLACK_TO_MOVE
    assert g.last_move == mv


def test_apply_rejects_illegal_move_without_change() -> None:
    g = Game.new()
    # e2e5 is illegal from the start position
    with pytest.raises(IllegalMove):
        g.apply_move(Move(str_to_square("e2"), str_to_square("e5")))
    assert g.to_fen() == STARTPOS_FEN
    assert g.history() == []


def test_apply_rejects_moving_opponent_piece() -> None:
    g = Game.new()
    with pytest.raises(IllegalMove):
        g.apply_move(Move(str_to_square("e7"), str_to_square("e5")))


def test_apply_rejects_move_from_empty_square() -> None:
    g = Game.new()
    with pytest.raises(IllegalMove):
        g.propose_move(str_to_square("e4"), str_to_square("e5"))


def test_apply_rejects_bad_promotion_letter() -> None:
    g = Game.from_fen("k7/4P3/8/8/8/8/8/4K3 w - - 0 1")
    with pytest.raises(IllegalMove):
        g.propose_move(str_to_square("e7"), str_to_square("e8"), "k")


def test_promotion_without_piece_is_ambiguous() -> None:
    g = Game.from_fen("k7/4P3/8/8/8/8/8/4K3 w - - 0 1")
    before = g.to_fen()
    with pytest.raises(AmbiguousPromotion):
        g.propose_move(str_to_square("e7"), str_to_square("e8"))
    assert g.to_fen() == before


def test_apply_handles_castling_rook_motion() -> None:
    g = Game.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    applied = g.propose_move(str_to_square("e1"), str_to_square("g1"))

    f1 = str_to_square("f1")
    h1 = str_to_square("h1")
    assert applied.san == "O-O"
    assert (g.board.bb[WR] >> f1) & 1
    assert ((g.board.bb[WR] >> h1) & 1) == 0


def test_move_after_checkmate_raises_game_over(play) -> None:
    g = play(Game.new(), "f2f3", "e7e5", "g2g4", "d8h4")
    assert g.checkmate()
    with pytest.raises(GameOver):
        g.propose_move(str_to_square("a2"), str_to_square("a3"))


def test_caller_move_matches_generated_flags() -> None:
    g = Game.from_fen("4k3/8/8/3Pp3/8/8/8/4K3 w - e6 0 1")
    applied = g.apply_move(Move(str_to_square("d5"), str_to_square("e6")))
    assert applied.move.is_capture
    assert applied.san == "dxe6"
