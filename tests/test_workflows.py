"""
Tests for the game workflow against Temporal's time-skipping test server.
Skipped when the test server cannot be started (it is downloaded on first use).
"""
import asyncio
import uuid
from datetime import timedelta

import pytest
from temporalio import activity
from temporalio.testing import WorkflowEnvironment
from temporalio.worker import Worker

from minesweeper import activities, engine
from minesweeper.types import GameConfig, GameState, GameStatus, MoveRequest
from minesweeper.workflows import MOVE_ACTIONS, MOVE_ACTIVITIES, MinesweeperWorkflow

BEGINNER = GameConfig(width=9, height=9, mine_count=10)
EXPERT = GameConfig(width=30, height=16, mine_count=99)

GAME_ACTIVITIES = [
    activities.reveal_cell,
    activities.toggle_flag,
    activities.chord_reveal,
    activities.open_cell,
]


@activity.defn(name="create_game")
async def create_game_except_expert(game_id: str, config: GameConfig) -> GameState:
    """Creates games like the real activity but cannot build an expert board."""
    if config.width == EXPERT.width:
        raise RuntimeError("board too large")
    return engine.new_game(config, game_id)


def run_with_worker(scenario, create_activity=activities.create_game):
    async def run():
        try:
            env = await WorkflowEnvironment.start_time_skipping()
        except Exception as error:
            pytest.skip(f"Temporal test server unavailable: {error}")
        async with env:
            task_queue = str(uuid.uuid4())
            async with Worker(
                env.client,
                task_queue=task_queue,
                workflows=[MinesweeperWorkflow],
                activities=[create_activity, *GAME_ACTIVITIES],
            ):
                await scenario(env, task_queue)
    asyncio.run(run())


async def start_game(env, task_queue, config=BEGINNER):
    game_id = str(uuid.uuid4())
    return await env.client.start_workflow(
        MinesweeperWorkflow.run,
        args=[game_id, config],
        id=game_id,
        task_queue=task_queue,
    )


async def move(handle, x, y, action='reveal'):
    return await handle.execute_update(MinesweeperWorkflow.make_move_update, MoveRequest(x=x, y=y, action=action))


def test_every_move_action_has_an_activity():
    assert set(MOVE_ACTIONS) == {'reveal', 'flag', 'unflag', 'chord', 'open'}
    assert MOVE_ACTIVITIES['flag'] is MOVE_ACTIVITIES['unflag']


def test_create_reveal_and_close():
    async def scenario(env, task_queue):
        handle = await start_game(env, task_queue)

        state = await move(handle, 4, 4)
        assert state.first_click_done
        assert state.status in (GameStatus.IN_PROGRESS, GameStatus.WON)
        assert state.board.cells[4][4].is_revealed
        assert sum(1 for row in state.board.cells for cell in row if cell.is_mine) == 10

        flag_target = next(cell for row in state.board.cells for cell in row if not cell.is_revealed)
        state = await move(handle, flag_target.x, flag_target.y, 'flag')
        assert state.flags_used == 1

        await handle.signal(MinesweeperWorkflow.close_game_signal)
        await handle.result()

        closed = await handle.query(MinesweeperWorkflow.get_game_state_query)
        assert closed.status == GameStatus.CLOSED
        assert closed.end_time is not None

    run_with_worker(scenario)


def test_failed_restart_keeps_previous_game():
    async def scenario(env, task_queue):
        handle = await start_game(env, task_queue)
        before = await move(handle, 4, 4)

        state = await handle.execute_update(MinesweeperWorkflow.restart_game_update, EXPERT)

        assert state.message == "Failed to start a new game: board too large"
        assert state.board == before.board
        assert state.cells_revealed == before.cells_revealed

        # The next move clears the message and plays on the old board
        hidden = next(cell for row in state.board.cells for cell in row if not cell.is_revealed)
        state = await move(handle, hidden.x, hidden.y, 'flag')
        assert state.message is None
        assert state.flags_used == 1

        restarted = await handle.execute_update(MinesweeperWorkflow.restart_game_update, BEGINNER)
        assert restarted.status == GameStatus.NOT_STARTED
        assert restarted.cells_revealed == 0

    run_with_worker(scenario, create_game_except_expert)


def test_moves_after_a_loss_change_nothing():
    async def scenario(env, task_queue):
        handle = await start_game(env, task_queue)
        state = await move(handle, 4, 4)
        if state.status == GameStatus.WON:
            pytest.skip("first click cleared the whole board")

        mine = next(cell for row in state.board.cells for cell in row if cell.is_mine)
        lost = await move(handle, mine.x, mine.y)
        assert lost.status == GameStatus.LOST

        for action in MOVE_ACTIONS:
            assert await move(handle, 0, 0, action) == lost

    run_with_worker(scenario)


def test_idle_game_closes_itself():
    async def scenario(env, task_queue):
        handle = await start_game(env, task_queue)
        await move(handle, 4, 4)

        await env.sleep(timedelta(hours=25))
        await handle.result()

        state = await handle.query(MinesweeperWorkflow.get_game_state_query)
        assert state.status == GameStatus.CLOSED
        assert state.end_time is not None

    run_with_worker(scenario)
