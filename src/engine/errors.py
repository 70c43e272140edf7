"""Engine error taxonomy.

Every recoverable error derives from :class:`EngineError`, itself a
``ValueError`` so callers that guard engine calls with ``except ValueError``
keep working. :class:`InvariantViolation` is the only non-recoverable error
and signals a bug in the engine rather than bad input.
"""

from __future__ import annotations


class EngineError(ValueError):
    """Base class for recoverable engine errors."""

    code = "engine_error"


class IllegalMove(EngineError):
    """Candidate move is not in the legal set of the current position."""

    code = "illegal_move"


class AmbiguousPromotion(EngineError):
    """A pawn reaches the last rank but no promotion piece was given."""

    code = "ambiguous_promotion"


class GameOver(EngineError):
    """Mutation attempted after checkmate, stalemate or a draw."""

    code = "game_over"


class NoHistory(EngineError):
    """Undo requested with an empty move stack."""

    code = "no_history"


class MalformedPosition(EngineError):
    """Serialized position could not be parsed or is not a valid position."""

    code = "malformed_position"


class InvariantViolation(RuntimeError):
    """Internal consistency broken (e.g. a king missing from the board)."""

    code = "invariant_violation"
