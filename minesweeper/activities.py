"""Temporal activities for game logic."""
import copy
from typing import Callable
from temporalio import activity
from minesweeper import engine
from minesweeper.types import GameConfig, GameState


@activity.defn
async def create_game(game_id: str, config: GameConfig) -> GameState:
    """Create a new game with an empty board. Mines are placed on the first reveal."""
    game_state = engine.new_game(config, game_id)
    board = game_state.board
    activity.logger.info(f"Created game {game_id}: {board.width}x{board.height}, {board.mine_count} mines")
    return game_state


def _apply(game_state: GameState, operation: Callable[[GameState, int, int], None], x: int, y: int) -> GameState:
    # Work on a copy so the caller's state is left untouched
    new_game_state = copy.deepcopy(game_state)
    operation(new_game_state, x, y)
    if new_game_state.status != game_state.status:
        activity.logger.info(f"Game {game_state.id} is now {new_game_state.status.value}")
    return new_game_state


@activity.defn
async def reveal_cell(game_state: GameState, x: int, y: int) -> GameState:
    """Reveal a cell and potentially cascade to neighbors."""
    return _apply(game_state, engine.reveal, x, y)


@activity.defn
async def toggle_flag(game_state: GameState, x: int, y: int) -> GameState:
    """Toggle flag on a cell."""
    return _apply(game_state, engine.toggle_flag, x, y)


@activity.defn
async def chord_reveal(game_state: GameState, x: int, y: int) -> GameState:
    """Mass open adjacent cells when flags match the cell's number."""
    return _apply(game_state, engine.chord_reveal, x, y)


@activity.defn
async def open_cell(game_state: GameState, x: int, y: int) -> GameState:
    """Primary click: chord on an open cell, reveal a closed one."""
    return _apply(game_state, engine.open_cell, x, y)
