from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .errors import InvariantViolation
from .piece import BLACK, WHITE, Piece


# Piece indices for bitboards
WP, WN, WB, WR, WQ, WK, BP, BN, BB, BR, BQ, BK = range(12)
PIECE_ORDER = [WP, WN, WB, WR, WQ, WK, BP, BN, BB, BR, BQ, BK]

_BACK_RANK = ("r", "n", "b", "q", "k", "b", "n", "r")


def _set_bit(bb: int, sq: int) -> int:
    return bb | (1 << sq)


def _get_bit(bb: int, sq: int) -> bool:
    return (bb >> sq) & 1 == 1


def iter_squares(bb: int) -> List[int]:
    """Expand a bitboard into ascending square indices."""
    squares: List[int] = []
    while bb:
        lsb = bb & -bb
        squares.append(lsb.bit_length() - 1)
        bb ^= lsb
    return squares


@dataclass
class Board:
    """Piece placement on the 8x8 grid, stored as 12 bitboards.

    Notes:
    - Squares are 0..63 (a1=0 .. h8=63), rank-major from white's perspective.
    - Pure storage: no knowledge of whose turn it is or which moves are legal.
    """

    # 12 piece bitboards, indexed by constants above
    bb: List[int] = field(default_factory=lambda: [0] * 12)

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board with the standard chess starting placement."""
        board = cls()
        for file_idx, kind in enumerate(_BACK_RANK):
            board.set_piece(file_idx, Piece(kind, WHITE))
            board.set_piece(8 + file_idx, Piece("p", WHITE))
            board.set_piece(48 + file_idx, Piece("p", BLACK))
            board.set_piece(56 + file_idx, Piece(kind, BLACK))
        return board

    def piece_at(self, sq: int) -> Optional[Piece]:
        """Return the piece on ``sq`` or ``None`` when empty."""
        for idx in PIECE_ORDER:
            if _get_bit(self.bb[idx], sq):
                return Piece.from_index(idx)
        return None

    def set_piece(self, sq: int, piece: Optional[Piece]) -> None:
        """Place ``piece`` on ``sq`` (replacing any occupant) or clear it."""
        if not 0 <= sq <= 63:
            raise ValueError(f"invalid square index: {sq}")
        mask = ~(1 << sq)
        for idx in PIECE_ORDER:
            self.bb[idx] &= mask
        if piece is not None:
            self.bb[piece.index] = _set_bit(self.bb[piece.index], sq)

    def find_king(self, color: str) -> int:
        """Return the square of ``color``'s king.

        Raises:
            InvariantViolation: If that king is not on the board.
        """
        kbb = self.bb[WK if color == WHITE else BK]
        if kbb == 0:
            raise InvariantViolation(f"no {'white' if color == WHITE else 'black'} king on board")
        return (kbb & -kbb).bit_length() - 1

    def occupancy(self, color: Optional[str] = None) -> int:
        if color == WHITE:
            return self.bb[WP] | self.bb[WN] | self.bb[WB] | self.bb[WR] | self.bb[WQ] | self.bb[WK]
        if color == BLACK:
            return self.bb[BP] | self.bb[BN] | self.bb[BB] | self.bb[BR] | self.bb[BQ] | self.bb[BK]
        occ = 0
        for bb in self.bb:
            occ |= bb
        return occ

    def pieces(self, color: str, kind: str) -> List[int]:
        """Squares holding ``color``'s pieces of ``kind``."""
        return iter_squares(self.bb[Piece(kind, color).index])

    def count(self, color: str, kind: str) -> int:
        return bin(self.bb[Piece(kind, color).index]).count("1")

    def copy(self) -> "Board":
        return Board(bb=list(self.bb))

    def __str__(self) -> str:
        rows: List[str] = []
        for rank in range(7, -1, -1):
            row = []
            for file_idx in range(8):
                piece = self.piece_at(rank * 8 + file_idx)
                row.append(piece.char if piece else ".")
            rows.append(f"{rank + 1} {' '.join(row)}")
        rows.append("  " + " ".join("abcdefgh"))
        return "\n".join(rows)
