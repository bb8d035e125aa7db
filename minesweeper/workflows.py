"""Temporal workflows for Minesweeper game."""
import asyncio
from datetime import timedelta
from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, FailureError

with workflow.unsafe.imports_passed_through():
    from minesweeper.config import INACTIVITY_HOURS
    from minesweeper.types import GameState, GameStatus, MoveRequest, GameConfig
    from minesweeper.activities import create_game, reveal_cell, toggle_flag, chord_reveal, open_cell


ACTIVITY_TIMEOUT = timedelta(seconds=60)
# Game actions are total functions over their inputs; a failure is not retried.
NO_RETRY = RetryPolicy(maximum_attempts=1)

MOVE_ACTIVITIES = {
    'reveal': reveal_cell,
    'flag': toggle_flag,
    'unflag': toggle_flag,
    'chord': chord_reveal,
    'open': open_cell,
}
MOVE_ACTIONS = tuple(MOVE_ACTIVITIES)


@workflow.defn
class MinesweeperWorkflow:
    """Workflow that owns a single Minesweeper session."""

    def __init__(self):
        self.game_id: str = ""
        self.game_state: GameState | None = None
        self.last_activity_time: float = 0
        self.should_close: bool = False
        # Activities suspend the handlers, so moves and restarts take turns on the state
        self.lock = asyncio.Lock()

    @workflow.run
    async def run(self, game_id: str, initial_config: GameConfig) -> None:
        """Main workflow entry point."""
        # Store game_id immediately so queries can access it during initialization
        self.game_id = game_id
        self.last_activity_time = workflow.time()

        self.game_state = await workflow.execute_activity(
            create_game,
            args=[game_id, initial_config],
            start_to_close_timeout=ACTIVITY_TIMEOUT,
            retry_policy=NO_RETRY,
        )

        inactivity_timeout = timedelta(hours=INACTIVITY_HOURS).total_seconds()

        while not self.should_close:
            idle = workflow.time() - self.last_activity_time
            if idle >= inactivity_timeout:
                workflow.logger.info(f"Game {game_id} auto-closing due to inactivity")
                break

            seen = self.last_activity_time
            try:
                await workflow.wait_condition(
                    lambda: self.should_close or self.last_activity_time != seen,
                    timeout=inactivity_timeout - idle,
                )
            except asyncio.TimeoutError:
                pass

        self.game_state.status = GameStatus.CLOSED
        if self.game_state.end_time is None:
            self.game_state.end_time = workflow.now()

        workflow.logger.info(f"Minesweeper workflow {game_id} completed")

    async def _apply_move(self, move_request: MoveRequest) -> None:
        activity_fn = MOVE_ACTIVITIES.get(move_request.action)
        if activity_fn is None:
            workflow.logger.warning(f"Ignoring unknown action {move_request.action!r}")
            return

        async with self.lock:
            if self.game_state.is_over:
                return
            self.last_activity_time = workflow.time()
            self.game_state.message = None
            self.game_state = await workflow.execute_activity(
                activity_fn,
                args=[self.game_state, move_request.x, move_request.y],
                start_to_close_timeout=ACTIVITY_TIMEOUT,
                retry_policy=NO_RETRY,
            )

    async def _restart(self, config: GameConfig) -> None:
        async with self.lock:
            if self.game_state.status == GameStatus.CLOSED:
                return  # Cannot restart closed games
            self.last_activity_time = workflow.time()
            try:
                self.game_state = await workflow.execute_activity(
                    create_game,
                    args=[self.game_id, config],
                    start_to_close_timeout=ACTIVITY_TIMEOUT,
                    retry_policy=NO_RETRY,
                )
            except ActivityError as error:
                # Keep playing the previous game and tell the player why
                reason = error.cause.message if isinstance(error.cause, FailureError) else error.message
                workflow.logger.error(f"Failed to start a new game for {self.game_id}: {reason}")
                self.game_state.message = f"Failed to start a new game: {reason}"

    @workflow.signal
    async def make_move_signal(self, move_request: MoveRequest) -> None:
        """Signal to make a move (fire-and-forget)."""
        await workflow.wait_condition(lambda: self.game_state is not None)
        try:
            await self._apply_move(move_request)
        except Exception as error:
            workflow.logger.error(f"Error processing move: {error}")

    @workflow.update
    async def make_move_update(self, move_request: MoveRequest) -> GameState:
        """Update to make a move and return the updated state."""
        await workflow.wait_condition(lambda: self.game_state is not None)
        try:
            await self._apply_move(move_request)
        except Exception as error:
            workflow.logger.error(f"Error processing move: {error}")

        return self.game_state

    @workflow.signal
    async def restart_game_signal(self, config: GameConfig) -> None:
        """Signal to restart the game with new configuration."""
        await workflow.wait_condition(lambda: self.game_state is not None)
        await self._restart(config)

    @workflow.update
    async def restart_game_update(self, config: GameConfig) -> GameState:
        """Update to restart the game and return the new state."""
        await workflow.wait_condition(lambda: self.game_state is not None)
        await self._restart(config)
        return self.game_state

    @workflow.signal
    def close_game_signal(self) -> None:
        """Signal to close the game."""
        self.should_close = True

    @workflow.query
    def get_game_state_query(self) -> GameState | None:
        """Query to get the current game state, None while the first game is being created."""
        return self.game_state
