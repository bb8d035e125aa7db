"""Temporal worker that hosts Minesweeper games."""
import asyncio
import logging
from temporalio.worker import Worker
from minesweeper.workflows import MinesweeperWorkflow
from minesweeper import activities
from minesweeper.config import TASK_QUEUE, get_temporal_client

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_worker(client) -> Worker:
    return Worker(
        client,
        task_queue=TASK_QUEUE,
        workflows=[MinesweeperWorkflow],
        activities=[
            activities.create_game,
            activities.reveal_cell,
            activities.toggle_flag,
            activities.chord_reveal,
            activities.open_cell,
        ],
    )


async def main():
    """Start the Temporal worker."""
    client = await get_temporal_client()
    worker = build_worker(client)

    logger.info(f"Worker started, listening on task queue: {TASK_QUEUE}")
    await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
