"""Type definitions for Minesweeper."""
from dataclasses import dataclass
from typing import List, Optional
from datetime import datetime
from enum import Enum


@dataclass
class Cell:
    """Represents a single cell on the minesweeper board."""
    x: int
    y: int
    is_mine: bool = False
    neighbor_mines: int = 0
    is_revealed: bool = False
    is_flagged: bool = False
    is_wrong_flag: bool = False


@dataclass
class GameBoard:
    """Represents the game board. Cells are indexed [y][x]."""
    cells: List[List[Cell]]
    width: int
    height: int
    mine_count: int


class GameStatus(str, Enum):
    """Possible game states."""
    NOT_STARTED = 'NOT_STARTED'
    IN_PROGRESS = 'IN_PROGRESS'
    WON = 'WON'
    LOST = 'LOST'
    CLOSED = 'CLOSED'


TERMINAL_STATUSES = (GameStatus.WON, GameStatus.LOST, GameStatus.CLOSED)


@dataclass
class GameState:
    """Current state of the game."""
    id: str
    board: GameBoard
    status: GameStatus = GameStatus.NOT_STARTED
    first_click_done: bool = False
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    flags_used: int = 0
    cells_revealed: int = 0
    message: Optional[str] = None

    @property
    def is_over(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_won(self) -> bool:
        return self.status == GameStatus.WON


@dataclass
class GameConfig:
    """Configuration for creating a new game."""
    width: int
    height: int
    mine_count: int


@dataclass
class MoveRequest:
    """Request to make a move."""
    x: int
    y: int
    action: str  # 'reveal', 'flag', 'unflag', 'chord', 'open'


@dataclass
class CellView:
    """What the player is allowed to see of a cell."""
    x: int
    y: int
    is_revealed: bool
    is_flagged: bool
    is_mine: bool
    is_wrong_flag: bool
    neighbor_mines: Optional[int]
