from __future__ import annotations

import pytest

from src.engine.errors import GameOver
from src.engine.game import DrawReason, Game, StatusKind, insufficient_material, numbered_history
from src.engine.move import parse_uci
from src.engine.notation import parse_fen


def test_initial_status() -> None:
    g = Game.new()
    assert len(g.legal_moves()) == 20
    status = g.status()
    assert status.kind == StatusKind.WHITE_TO_MOVE
    assert status.text == "White to move"
    assert not status.is_terminal
    assert not g.in_check()


def test_legal_moves_from_square() -> None:
    g = Game.new()
    assert {m.to_uci() for m in g.legal_moves(12)} == {"e2e3", "e2e4"}
    assert g.legal_moves(28) == []


def test_fools_mate(play) -> None:
    g = play(Game.new(), "f2f3", "e7e5", "g2g4", "d8h4")
    status = g.status()
    assert g.checkmate()
    assert status.kind == StatusKind.CHECKMATE
    assert status.winner == "b"
    assert status.in_check
    assert status.text == "Checkmate! Black wins."
    assert g.is_game_over()
    assert g.legal_moves() == []
    assert g.history() == ["f3", "e5", "g4", "Qh4#"]


def test_scholars_mate_white_wins(play) -> None:
    g = play(Game.new(), "e2e4", "e7e5", "d1h5", "b8c6", "f1c4", "g8f6", "h5f7")
    assert g.status().winner == "w"
    assert g.status().text == "Checkmate! White wins."


def test_check_status(play) -> None:
    g = play(Game.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1"), "a1a8")
    status = g.status()
    assert status.kind == StatusKind.BLACK_IN_CHECK
    assert status.text == "Check! Black to move."
    assert g.in_check()
    assert g.history() == ["Ra8+"]


def test_stalemate() -> None:
    g = Game.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert g.stalemate()
    assert not g.checkmate()
    assert g.status().text == "Stalemate!"
    assert g.status().winner is None
    assert g.is_game_over()


def test_fifty_move_rule(play) -> None:
    g = Game.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 99 80")
    assert not g.is_draw()
    play(g, "a1a2")
    assert g.is_draw()
    assert g.draw_reason() == DrawReason.FIFTY_MOVE
    assert g.status().kind == StatusKind.DRAW
    assert g.status().text == "Draw! (fifty-move rule)"


def test_checkmate_outranks_fifty_move_rule(play) -> None:
    g = play(Game.from_fen("k7/8/1K6/8/8/8/8/7R w - - 99 80"), "h1h8")
    assert g.aux.halfmove_clock == 100
    assert g.checkmate()
    # The draw condition is still reported on its own
    assert g.is_draw()


def test_threefold_repetition(play) -> None:
    g = Game.new()
    shuffle = ("g1f3", "g8f6", "f3g1", "f6g8")
    play(g, *shuffle)
    assert not g.is_draw()
    play(g, *shuffle)
    assert g.draw_reason() == DrawReason.REPETITION
    assert g.status().text == "Draw! (threefold repetition)"
    with pytest.raises(GameOver):
        g.apply_move(parse_uci("e2e4"))
    g.undo_move()
    assert not g.is_game_over()


def test_insufficient_material_draw() -> None:
    g = Game.from_fen("4k3/8/8/8/8/8/8/4K3 w - - 0 1")
    assert g.is_draw()
    assert g.status().reason == DrawReason.INSUFFICIENT_MATERIAL
    assert g.status().text == "Draw! (insufficient material)"


@pytest.mark.parametrize(
    "fen,expected",
    [
        ("4k3/8/8/8/8/8/8/4K3 w - - 0 1", True),
        ("4k3/8/8/8/8/8/8/2B1K3 w - - 0 1", True),
        ("4k3/8/8/8/8/8/8/1N2K3 w - - 0 1", True),
        ("4kb2/8/8/8/8/8/8/2B1K3 w - - 0 1", True),  # bishops on same colour
        ("2b1k3/8/8/8/8/8/8/2B1K3 w - - 0 1", False),  # opposite colours
        ("4k3/8/8/8/8/8/8/1NN1K3 w - - 0 1", False),
        ("4k3/8/8/8/8/8/8/R3K3 w - - 0 1", False),
        ("4k3/8/8/8/8/8/4P3/4K3 w - - 0 1", False),
    ],
)
def test_insufficient_material(fen: str, expected: bool) -> None:
    board, _ = parse_fen(fen)
    assert insufficient_material(board) is expected


def test_numbered_history(play) -> None:
    g = play(Game.new(), "f2f3", "e7e5", "g2g4")
    assert g.numbered_history() == [(1, "f3", "e5"), (2, "g4", None)]


def test_numbered_history_black_starts(play) -> None:
    g = play(Game.from_fen("4k3/8/8/8/8/8/8/R3K3 b - - 0 7"), "e8d7", "a1a7")
    assert g.numbered_history() == [(7, None, "Kd7"), (8, "Ra7+", None)]
    assert numbered_history([], 1, "b") == []


def test_move_history_uci(play) -> None:
    g = play(Game.new(), "e2e4", "e7e5")
    assert g.move_history_uci() == ["e2e4", "e7e5"]
