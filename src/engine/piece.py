from __future__ import annotations

from dataclasses import dataclass


WHITE = "w"
BLACK = "b"

PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING = "p", "n", "b", "r", "q", "k"
KINDS = (PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING)


def opposite(color: str) -> str:
    return BLACK if color == WHITE else WHITE


@dataclass(frozen=True)
class Piece:
    """Immutable (kind, color) pair.

    ``kind`` is one of ``"pnbrqk"`` and ``color`` is ``"w"`` or ``"b"``,
    mirroring the lowercase letters used in FEN and UCI promotion suffixes.
    """

    kind: str
    color: str

    @property
    def index(self) -> int:
        """Bitboard slot (WP..WK = 0..5, BP..BK = 6..11)."""
        return KINDS.index(self.kind) + (0 if self.color == WHITE else 6)

    @property
    def char(self) -> str:
        """FEN letter: uppercase for White, lowercase for Black."""
        return self.kind.upper() if self.color == WHITE else self.kind

    @classmethod
    def from_char(cls, ch: str) -> "Piece":
        kind = ch.lower()
        if len(ch) != 1 or kind not in KINDS:
            raise ValueError(f"invalid piece character: {ch!r}")
        return cls(kind, WHITE if ch.isupper() else BLACK)

    @classmethod
    def from_index(cls, idx: int) -> "Piece":
        return cls(KINDS[idx % 6], WHITE if idx < 6 else BLACK)

    def __str__(self) -> str:
        return self.char
