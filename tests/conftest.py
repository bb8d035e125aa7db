import random

import pytest

from minesweeper import engine
from minesweeper.types import GameConfig, GameStatus


def make_game(mines, width=5, height=5):
    """A game past its first click with mines at the given (x, y) positions."""
    state = engine.new_game(GameConfig(width=width, height=height, mine_count=len(mines)), "test")
    for x, y in mines:
        state.board.cells[y][x].is_mine = True
    state.board.mine_count = len(mines)
    engine.count_neighbor_mines(state.board)
    state.first_click_done = True
    state.status = GameStatus.IN_PROGRESS
    return state


def all_cells(state):
    return [cell for row in state.board.cells for cell in row]


@pytest.fixture
def rng():
    return random.Random(1234)
