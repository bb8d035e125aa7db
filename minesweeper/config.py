"""Game presets, board bounds and process settings."""
import os
import pathlib
import platform
from typing import Any, Mapping, Optional

from temporalio.client import Client
from temporalio.envconfig import ClientConfig

from minesweeper.types import GameConfig


TEMPORAL_ADDRESS = os.getenv("TEMPORAL_ADDRESS", "localhost:7233")
TEMPORAL_NAMESPACE = os.getenv("TEMPORAL_NAMESPACE", "default")
TASK_QUEUE = os.getenv("MINESWEEPER_TASK_QUEUE", "minesweeper-task-queue")
INACTIVITY_HOURS = float(os.getenv("MINESWEEPER_INACTIVITY_HOURS", 24))

PRESETS = {
    'beginner': GameConfig(width=9, height=9, mine_count=10),
    'intermediate': GameConfig(width=16, height=16, mine_count=40),
    'expert': GameConfig(width=30, height=16, mine_count=99),
}
DEFAULT_PRESET = 'beginner'

MIN_WIDTH, MAX_WIDTH = 5, 40
MIN_HEIGHT, MAX_HEIGHT = 5, 30
MIN_MINES, MAX_MINES = 1, 999

# Defaults for the custom path when a value is missing or not a number.
CUSTOM_DEFAULTS = GameConfig(width=12, height=12, mine_count=20)

# The first click opens a 3x3 safe zone, so that many cells can never hold a mine.
SAFE_ZONE_SIZE = 9


def clamp(n: int, low: int, high: int) -> int:
    return max(low, min(high, n))


def clamp_config(config: GameConfig) -> GameConfig:
    """Clamp width, height and mine count into playable bounds."""
    width = clamp(config.width, MIN_WIDTH, MAX_WIDTH)
    height = clamp(config.height, MIN_HEIGHT, MAX_HEIGHT)
    max_mines = min(MAX_MINES, width * height - SAFE_ZONE_SIZE)
    mine_count = clamp(config.mine_count, MIN_MINES, max(MIN_MINES, max_mines))
    return GameConfig(width=width, height=height, mine_count=mine_count)


def _to_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def resolve_config(preset: Optional[str] = None, custom: Optional[Mapping[str, Any]] = None) -> GameConfig:
    """Turn a preset name or a custom {width, height, mineCount} mapping into a clamped config.

    A named preset wins over custom values. Unknown preset names fall back
    to the beginner board, and custom values that are missing or not
    numbers fall back to CUSTOM_DEFAULTS.
    """
    if preset and preset != 'custom':
        chosen = PRESETS.get(preset, PRESETS[DEFAULT_PRESET])
        return GameConfig(width=chosen.width, height=chosen.height, mine_count=chosen.mine_count)

    if custom is None:
        if preset == 'custom':
            custom = {}
        else:
            chosen = PRESETS[DEFAULT_PRESET]
            return GameConfig(width=chosen.width, height=chosen.height, mine_count=chosen.mine_count)

    return clamp_config(GameConfig(
        width=_to_int(custom.get('width'), CUSTOM_DEFAULTS.width),
        height=_to_int(custom.get('height'), CUSTOM_DEFAULTS.height),
        mine_count=_to_int(custom.get('mineCount'), CUSTOM_DEFAULTS.mine_count),
    ))


def presets_payload() -> dict:
    """Presets and custom bounds in the shape the HTTP API returns them."""
    return {
        'presets': {
            name: {'width': p.width, 'height': p.height, 'mineCount': p.mine_count}
            for name, p in PRESETS.items()
        },
        'custom': {
            'width': {'min': MIN_WIDTH, 'max': MAX_WIDTH, 'default': CUSTOM_DEFAULTS.width},
            'height': {'min': MIN_HEIGHT, 'max': MAX_HEIGHT, 'default': CUSTOM_DEFAULTS.height},
            'mineCount': {'min': MIN_MINES, 'max': MAX_MINES, 'default': CUSTOM_DEFAULTS.mine_count},
        },
    }


def temporal_config_file_path() -> pathlib.Path:
    """Default location of temporal.toml for the current operating system."""
    system = platform.system()
    if system == "Darwin":
        return pathlib.Path.home() / "Library/Application Support/temporalio/temporal.toml"
    if system == "Windows":
        app_data = os.getenv("AppData")
        if app_data is None:
            raise RuntimeError("AppData environment variable not set")
        return pathlib.Path(app_data) / "temporalio/temporal.toml"

    config_home = os.getenv("XDG_CONFIG_HOME")
    base = pathlib.Path(config_home) if config_home else pathlib.Path.home() / ".config"
    return base / "temporalio/temporal.toml"


async def get_temporal_client() -> Client:
    """Connect to Temporal for the worker and the HTTP server.

    TEMPORAL_PROFILE selects a profile from temporal.toml when that file
    exists; otherwise TEMPORAL_ADDRESS and TEMPORAL_NAMESPACE are used.
    """
    profile_name = os.getenv("TEMPORAL_PROFILE")
    config_file_path = temporal_config_file_path()
    if profile_name and config_file_path.is_file():
        connect_config = ClientConfig.load_client_connect_config(
            profile=profile_name,
            config_file=str(config_file_path),
        )
        return await Client.connect(**connect_config)

    return await Client.connect(TEMPORAL_ADDRESS, namespace=TEMPORAL_NAMESPACE)
