"""Flask server for Minesweeper game."""
import asyncio
import os
import logging
from datetime import datetime, timezone
from flask import Flask, request, jsonify
from flask_cors import CORS
from temporalio.client import Client
import uuid

from minesweeper import engine
from minesweeper.config import TASK_QUEUE, get_temporal_client, presets_payload, resolve_config
from minesweeper.workflows import MOVE_ACTIONS, MinesweeperWorkflow
from minesweeper.types import GameState, MoveRequest

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Global client reference
temporal_client: Client | None = None


def serialize_datetime(value):
    """Helper to serialize datetime objects."""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def serialize_game_state(game_state: GameState, now: datetime | None = None):
    """Convert game state to the JSON shape the client renders, hiding unrevealed mines."""
    board = game_state.board
    cells = []
    for y in range(board.height):
        row_cells = []
        for x in range(board.width):
            view = engine.cell_view(game_state, x, y)
            row_cells.append({
                'x': view.x,
                'y': view.y,
                'isRevealed': view.is_revealed,
                'isFlagged': view.is_flagged,
                'isMine': view.is_mine,
                'isWrongFlag': view.is_wrong_flag,
                'neighborMines': view.neighbor_mines,
            })
        cells.append(row_cells)

    return {
        'id': game_state.id,
        'board': {
            'cells': cells,
            'width': board.width,
            'height': board.height,
            'mineCount': board.mine_count,
        },
        'status': game_state.status.value,
        'message': game_state.message or engine.status_message(game_state),
        'minesRemaining': engine.mines_remaining(game_state),
        'elapsedSeconds': engine.elapsed_seconds(game_state, now or datetime.now(timezone.utc)),
        'startTime': serialize_datetime(game_state.start_time),
        'endTime': serialize_datetime(game_state.end_time),
        'flagsUsed': game_state.flags_used,
        'cellsRevealed': game_state.cells_revealed,
    }


def config_from_body(data):
    """Read {"preset": name} or {"config": {...}} from a request body."""
    data = data or {}
    return resolve_config(data.get('preset'), data.get('config'))


async def query_with_retry(handle, max_retries=5):
    """Query the game state, retrying while the workflow is still creating its first board."""
    for i in range(max_retries):
        try:
            game_state = await handle.query(MinesweeperWorkflow.get_game_state_query)
            if game_state is not None:
                return game_state
            error = RuntimeError("Game is still being created")
        except Exception as query_error:
            error = query_error
        if i < max_retries - 1:
            logger.info(f"Query not ready yet, retrying in {(i + 1) * 100}ms...")
            await asyncio.sleep((i + 1) * 0.1)
    raise error


@app.route('/api/presets', methods=['GET'])
def get_presets():
    """List difficulty presets and custom bounds."""
    return jsonify(presets_payload())


@app.route('/api/games', methods=['POST'])
def create_game():
    """Create a new game."""
    try:
        config = config_from_body(request.get_json(silent=True))
        game_id = str(uuid.uuid4())

        async def start_workflow():
            handle = await temporal_client.start_workflow(
                MinesweeperWorkflow.run,
                args=[game_id, config],
                id=game_id,
                task_queue=TASK_QUEUE,
            )
            return await query_with_retry(handle)

        game_state = asyncio.run(start_workflow())
        logger.info(f"Created game {game_id} ({config.width}x{config.height}, {config.mine_count} mines)")
        return jsonify({'gameState': serialize_game_state(game_state)})

    except Exception as error:
        logger.error(f"Error creating game: {error}")
        return jsonify({'error': f"Failed to start a new game: {error}"}), 500


@app.route('/api/games/<game_id>', methods=['GET'])
def get_game_state(game_id):
    """Get game state."""
    try:
        async def query_game():
            handle = temporal_client.get_workflow_handle(game_id)
            return await query_with_retry(handle)

        game_state = asyncio.run(query_game())
        return jsonify({'gameState': serialize_game_state(game_state)})

    except Exception as error:
        logger.error(f"Error getting game state: {error}")
        return jsonify({'error': 'Game not found'}), 404


@app.route('/api/games/<game_id>/moves', methods=['POST'])
def make_move(game_id):
    """Make a move."""
    data = request.get_json(silent=True) or {}

    x, y, action = data.get('x'), data.get('y'), data.get('action')
    if type(x) is not int or type(y) is not int or action not in MOVE_ACTIONS:
        return jsonify({'error': 'Invalid move request'}), 400

    move_request = MoveRequest(x=x, y=y, action=action)

    try:
        async def execute_move():
            handle = temporal_client.get_workflow_handle(game_id)
            return await handle.execute_update(MinesweeperWorkflow.make_move_update, move_request)

        game_state = asyncio.run(execute_move())
        return jsonify({'gameState': serialize_game_state(game_state)})

    except Exception as error:
        logger.error(f"Error making move: {error}")
        return jsonify({'error': 'Failed to make move'}), 500


@app.route('/api/games/<game_id>/restart', methods=['POST'])
def restart_game(game_id):
    """Restart game."""
    try:
        config = config_from_body(request.get_json(silent=True))

        async def execute_restart():
            handle = temporal_client.get_workflow_handle(game_id)
            return await handle.execute_update(MinesweeperWorkflow.restart_game_update, config)

        game_state = asyncio.run(execute_restart())
        return jsonify({'gameState': serialize_game_state(game_state)})

    except Exception as error:
        logger.error(f"Error restarting game: {error}")
        return jsonify({'error': f"Failed to start a new game: {error}"}), 500


@app.route('/api/games/<game_id>', methods=['DELETE'])
def close_game(game_id):
    """Close the game session."""
    try:
        async def send_close():
            handle = temporal_client.get_workflow_handle(game_id)
            await handle.signal(MinesweeperWorkflow.close_game_signal)

        asyncio.run(send_close())
        return jsonify({'closed': game_id})

    except Exception as error:
        logger.error(f"Error closing game: {error}")
        return jsonify({'error': 'Failed to close game'}), 500


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.now(timezone.utc).isoformat()
    })


async def initialize_client():
    """Initialize Temporal client."""
    global temporal_client
    temporal_client = await get_temporal_client()
    logger.info("Connected to Temporal server")


def main():
    """Start the Flask server."""
    try:
        asyncio.run(initialize_client())

        port = int(os.getenv("PORT", 3000))
        logger.info(f"Minesweeper server running on http://localhost:{port}")
        logger.info("Make sure to start the Temporal worker in another terminal: python -m minesweeper.worker")

        app.run(host='0.0.0.0', port=port, debug=False)

    except Exception as error:
        logger.error(f"Failed to start server: {error}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
