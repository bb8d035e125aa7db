"""Minesweeper game engine.

Pure game logic over an explicitly owned GameState. ``new_game`` builds a
fresh state; the action functions (``reveal``, ``toggle_flag``,
``chord_reveal``, ``open_cell``) mutate the state they are given and are
silent no-ops whenever the action does not apply (out of bounds, game
over, cell already open or flagged). Nothing here knows about Temporal,
HTTP or rendering.
"""
import logging
import random
from collections import deque
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from minesweeper.config import clamp, clamp_config
from minesweeper.types import Cell, CellView, GameBoard, GameConfig, GameState, GameStatus

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    GameStatus.NOT_STARTED: "New game. The first click is always safe.",
    GameStatus.IN_PROGRESS: "Game in progress.",
    GameStatus.WON: "You win!",
    GameStatus.LOST: "Game over. Press \"New game\" to play again.",
    GameStatus.CLOSED: "This game has been closed.",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def in_bounds(board: GameBoard, x: int, y: int) -> bool:
    return 0 <= x < board.width and 0 <= y < board.height


def neighbors(board: GameBoard, x: int, y: int) -> List[Tuple[int, int]]:
    """Return the in-bounds Moore neighbours of (x, y)."""
    out = []
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            nx, ny = x + dx, y + dy
            if in_bounds(board, nx, ny):
                out.append((nx, ny))
    return out


def new_game(config: GameConfig, game_id: str = "") -> GameState:
    """Create a fresh game. Mines are placed later, on the first reveal."""
    config = clamp_config(config)
    cells = [
        [Cell(x=x, y=y) for x in range(config.width)]
        for y in range(config.height)
    ]
    board = GameBoard(cells=cells, width=config.width, height=config.height, mine_count=config.mine_count)
    logger.debug(f"New game {game_id!r}: {config.width}x{config.height}, {config.mine_count} mines")
    return GameState(id=game_id, board=board)


def place_mines(board: GameBoard, safe_x: int, safe_y: int, rng=random) -> None:
    """Place mines uniformly at random outside the 3x3 zone around (safe_x, safe_y).

    The board's mine count is re-clamped so there are always enough free
    slots, then a partial Fisher-Yates shuffle picks the mine positions.
    """
    width = board.width
    safe = {safe_y * width + safe_x}
    safe.update(ny * width + nx for nx, ny in neighbors(board, safe_x, safe_y))
    allowed = [key for key in range(width * board.height) if key not in safe]

    board.mine_count = clamp(board.mine_count, 1, max(1, len(allowed) - 1))

    for i in range(board.mine_count):
        j = rng.randrange(i, len(allowed))
        allowed[i], allowed[j] = allowed[j], allowed[i]
        y, x = divmod(allowed[i], width)
        board.cells[y][x].is_mine = True

    logger.debug(f"Placed {board.mine_count} mines avoiding ({safe_x}, {safe_y})")


def count_neighbor_mines(board: GameBoard) -> None:
    """Compute neighbor_mines for every cell. Mines keep 0."""
    for row in board.cells:
        for cell in row:
            if cell.is_mine:
                cell.neighbor_mines = 0
                continue
            cell.neighbor_mines = sum(
                1 for nx, ny in neighbors(board, cell.x, cell.y) if board.cells[ny][nx].is_mine
            )


def reveal(state: GameState, x: int, y: int, rng=random, now: Optional[datetime] = None) -> None:
    """Open a cell, flood-filling through zero-adjacency regions."""
    board = state.board
    if state.is_over or not in_bounds(board, x, y):
        return
    cell = board.cells[y][x]
    if cell.is_revealed or cell.is_flagged:
        return

    if not state.first_click_done:
        state.first_click_done = True
        state.start_time = now or _now()
        state.status = GameStatus.IN_PROGRESS
        place_mines(board, x, y, rng)
        count_neighbor_mines(board)

    cell.is_revealed = True
    state.cells_revealed += 1

    if cell.is_mine:
        _lose(state, now)
        return

    if cell.neighbor_mines == 0:
        _flood_fill(state, x, y)

    check_win(state, now)


def _flood_fill(state: GameState, x: int, y: int) -> None:
    board = state.board
    queue = deque([(x, y)])
    seen = {y * board.width + x}
    while queue:
        cx, cy = queue.popleft()
        for nx, ny in neighbors(board, cx, cy):
            neighbor = board.cells[ny][nx]
            if neighbor.is_revealed or neighbor.is_flagged:
                continue
            neighbor.is_revealed = True
            state.cells_revealed += 1
            if neighbor.neighbor_mines == 0:
                key = ny * board.width + nx
                if key not in seen:
                    seen.add(key)
                    queue.append((nx, ny))


def toggle_flag(state: GameState, x: int, y: int, now: Optional[datetime] = None) -> None:
    """Flag or unflag a closed cell."""
    if state.is_over or not in_bounds(state.board, x, y):
        return
    cell = state.board.cells[y][x]
    if cell.is_revealed:
        return

    cell.is_flagged = not cell.is_flagged
    state.flags_used += 1 if cell.is_flagged else -1
    check_win(state, now)


def chord_reveal(state: GameState, x: int, y: int, rng=random, now: Optional[datetime] = None) -> None:
    """Open every unflagged neighbour of a number once its flags are all placed.

    Only applies to a revealed number whose count of flagged neighbours
    matches it exactly; anything else is a no-op.
    """
    board = state.board
    if state.is_over or not in_bounds(board, x, y):
        return
    cell = board.cells[y][x]
    if not cell.is_revealed or cell.is_mine or cell.neighbor_mines == 0:
        return

    around = neighbors(board, x, y)
    flagged = sum(1 for nx, ny in around if board.cells[ny][nx].is_flagged)
    if flagged != cell.neighbor_mines:
        return

    for nx, ny in around:
        reveal(state, nx, ny, rng, now)


def open_cell(state: GameState, x: int, y: int, rng=random, now: Optional[datetime] = None) -> None:
    """Primary click: chord on an open cell, reveal a closed one."""
    if not in_bounds(state.board, x, y):
        return
    if state.board.cells[y][x].is_revealed:
        chord_reveal(state, x, y, rng, now)
    else:
        reveal(state, x, y, rng, now)


def _lose(state: GameState, now: Optional[datetime] = None) -> None:
    state.status = GameStatus.LOST
    state.end_time = now or _now()

    for row in state.board.cells:
        for cell in row:
            if cell.is_mine or cell.is_flagged:
                if not cell.is_revealed:
                    cell.is_revealed = True
                    state.cells_revealed += 1
                if cell.is_flagged and not cell.is_mine:
                    cell.is_wrong_flag = True


def check_win(state: GameState, now: Optional[datetime] = None) -> bool:
    """Finish the game as won once every non-mine cell is open.

    Flags are not required to win. On a win every mine gets flagged.
    """
    if state.is_over or not state.first_click_done:
        return False
    board = state.board
    if state.cells_revealed != board.width * board.height - board.mine_count:
        return False

    state.status = GameStatus.WON
    state.end_time = now or _now()
    for row in board.cells:
        for cell in row:
            if cell.is_mine:
                cell.is_flagged = True
    state.flags_used = board.mine_count
    return True


def mines_remaining(state: GameState) -> int:
    return state.board.mine_count - state.flags_used


def elapsed_seconds(state: GameState, now: Optional[datetime] = None) -> int:
    """Whole seconds since the first reveal, frozen once the game has ended."""
    if state.start_time is None:
        return 0
    end = state.end_time or now or _now()
    return max(0, int((end - state.start_time).total_seconds()))


def status_message(state: GameState) -> str:
    return STATUS_MESSAGES[state.status]


def cell_view(state: GameState, x: int, y: int) -> CellView:
    """What the player may see of a cell: mines and counts only when open or after the game."""
    cell = state.board.cells[y][x]
    visible = cell.is_revealed or state.is_over
    return CellView(
        x=cell.x,
        y=cell.y,
        is_revealed=cell.is_revealed,
        is_flagged=cell.is_flagged,
        is_mine=cell.is_mine if visible else False,
        is_wrong_flag=cell.is_wrong_flag,
        neighbor_mines=cell.neighbor_mines if cell.is_revealed and not cell.is_mine else None,
    )
