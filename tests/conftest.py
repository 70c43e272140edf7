import os
import sys

import pytest


# Ensure the repository root is on sys.path for `from src...` imports
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


@pytest.fixture
def play():
    """Play a sequence of UCI moves on a game and return it."""
    from src.engine.move import parse_uci

    def _play(game, *ucis: str):
        for uci in ucis:
            game.apply_move(parse_uci(uci))
        return game

    return _play
