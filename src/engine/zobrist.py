from __future__ import annotations

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board
    from .position import AuxState


MASK64 = 0xFFFFFFFFFFFFFFFF
CASTLING_ORDER = "KQkq"


class _SplitMix64:
    def __init__(self, seed: int) -> None:
        self.state = seed & MASK64

    def next(self) -> int:
        # Deterministic 64-bit SplitMix64
        self.state = (self.state + 0x9E3779B97F4A7C15) & MASK64
        z = self.state
        z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & MASK64
        z = (z ^ (z >> 27)) * 0x94D049BB133111EB & MASK64
        z = z ^ (z >> 31)
        return z & MASK64


class Zobrist:
    """Zobrist hashing seeds used for position keys.

    Table layout:
    - piece_square[12][64]: indices follow Board piece order (WP..BK)
    - side_to_move: toggle for black side to move
    - castling[4]: K, Q, k, q
    - ep_file[8]: files a..h (the rank follows from the side to move)
    """

    piece_square: List[List[int]]
    side_to_move: int
    castling: List[int]
    ep_file: List[int]

    def __init__(self, seed: int = 0xC0FFEE_F00D_DEAD) -> None:
        prng = _SplitMix64(seed)
        self.piece_square = [[0] * 64 for _ in range(12)]
        for p in range(12):
            for sq in range(64):
                self.piece_square[p][sq] = prng.next()
        self.side_to_move = prng.next()
        self.castling = [prng.next() for _ in range(4)]  # K, Q, k, q
        self.ep_file = [prng.next() for _ in range(8)]  # a..h


# Global deterministic table, read-only after import
ZOBRIST = Zobrist()


def compute_hash_from_scratch(board: "Board", aux: "AuxState") -> int:
    """Compute the 64-bit position key of ``board`` under ``aux``.

    Covers placement, side to move, castling rights and the en-passant
    target. Move clocks are excluded so equal positions reached at different
    points of a game share a key.
    """
    h = 0
    for p in range(12):
        bb = board.bb[p]
        while bb:
            lsb = bb & -bb
            sq = lsb.bit_length() - 1
            h ^= ZOBRIST.piece_square[p][sq]
            bb ^= lsb
    if aux.side_to_move == "b":
        h ^= ZOBRIST.side_to_move
    for i, ch in enumerate(CASTLING_ORDER):
        if ch in aux.castling:
            h ^= ZOBRIST.castling[i]
    if aux.ep_square is not None:
        h ^= ZOBRIST.ep_file[aux.ep_square % 8]
    return h & MASK64
