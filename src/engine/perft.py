from __future__ import annotations

from typing import Dict

from .board import Board
from .movegen import generate_legal_moves
from .position import AuxState, make_move, unmake_move


def perft(board: Board, aux: AuxState, depth: int) -> int:
    """Compute perft node count for the position at `depth`.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    The board is played forward and taken back in place; it is unchanged on
    return.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1

    moves = generate_legal_moves(board, aux)
    if depth == 1:
        return len(moves)

    nodes = 0
    for m in moves:
        child_aux, captured = make_move(board, aux, m)
        nodes += perft(board, child_aux, depth - 1)
        unmake_move(board, m, captured)
    return nodes


def divide(board: Board, aux: AuxState, depth: int) -> Dict[str, int]:
    """Per-root-move perft counts keyed by UCI, for locating generator bugs."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    counts: Dict[str, int] = {}
    for m in generate_legal_moves(board, aux):
        child_aux, captured = make_move(board, aux, m)
        counts[m.to_uci()] = perft(board, child_aux, depth - 1)
        unmake_move(board, m, captured)
    return counts
