"""
Main entry point for CamSpin.

Runs a local room in one process: a host, a few camera-equipped players
and one player who joins mid-spin, all sharing an in-memory room store
and each running its own frame loop.
"""

import argparse
import asyncio
import logging
import random
import sys
from typing import Optional

from camspin.capture.camera import SyntheticCamera
from camspin.config.settings import Settings, get_settings
from camspin.core.events import Event, EventType
from camspin.session.context import SessionContext
from camspin.session.host import HostSession
from camspin.session.spectator import SpectatorSession
from camspin.store.base import RoomStore
from camspin.store.memory import InMemoryRoomStore

DEMO_NAMES = ["Ava", "Ben", "Cleo", "Dev", "Eli", "Fay", "Gus", "Hana"]

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


async def run_demo(
    settings: Settings,
    players: int = 3,
    rounds: int = 1,
    early_stop: Optional[float] = None,
    seed: Optional[int] = None,
    store: Optional[RoomStore] = None,
) -> list[str]:
    """Play rounds in a local room.

    Args:
        settings: Application settings
        players: Players present before the first shuffle
        rounds: Number of shuffles to run
        early_stop: Seconds after which the host stops each shuffle early
        seed: Seed for reproducible picks
        store: Shared room store (a fresh in-memory store by default)

    Returns:
        Winner names of the rounds whose outcome was published
    """
    if store is None:
        store = InMemoryRoomStore()
    rng = random.Random(seed)

    host = HostSession(SessionContext(store=store, settings=settings, rng=rng))
    code = await host.start(resume=False)
    host.context.loop.start()

    spectators: list[SpectatorSession] = []
    for i, name in enumerate(DEMO_NAMES[:players]):
        spectator = SpectatorSession(SessionContext(store=store, settings=settings))
        await spectator.join(code, name)
        spectator.attach_camera(SyntheticCamera(tint=(60 + 20 * i, 40, 100)))
        spectator.context.loop.start()
        spectators.append(spectator)

    landed = asyncio.Event()

    def on_landed(event: Event) -> None:
        landed.set()

    host.context.event_bus.subscribe(EventType.SPIN_LANDED, on_landed)

    winners: list[str] = []
    try:
        for round_number in range(1, rounds + 1):
            landed.clear()
            host.request_spin()

            if round_number == 1:
                # Late arrival: sees the spin already running
                late = SpectatorSession(SessionContext(store=store, settings=settings))
                await late.join(code, "Latecomer")
                late.context.loop.start()
                spectators.append(late)

            if early_stop is not None:
                await asyncio.sleep(early_stop)
                host.request_stop()

            await landed.wait()
            await host.drain()

            winner = host.winner
            if winner is None:
                logger.warning(f"Round {round_number}: outcome was not published")
                continue
            winners.append(winner.name)
            logger.info(f"Round {round_number}: {winner.name} wins")
            for spectator in spectators:
                seen = spectator.winner
                logger.info(f"  {spectator.name} sees {seen.name if seen else 'nobody'}")
    finally:
        await host.close_room()
        host.context.loop.stop()
        for spectator in spectators:
            spectator.context.loop.stop()
            if spectator.uploader is not None:
                await spectator.uploader.drain()

    return winners


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a local CamSpin room")
    parser.add_argument("--players", type=int, default=3, help="players before the first shuffle")
    parser.add_argument("--rounds", type=int, default=1, help="number of shuffles")
    parser.add_argument("--early-stop", type=float, default=None, help="stop each shuffle after N seconds")
    parser.add_argument("--seed", type=int, default=None, help="seed for reproducible picks")
    return parser.parse_args(argv)


def main() -> None:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    settings = get_settings()
    setup_logging(settings.debug)
    args = parse_args()

    if not 2 <= args.players <= len(DEMO_NAMES):
        logger.error(f"--players must be between 2 and {len(DEMO_NAMES)}")
        sys.exit(2)

    logger.info("CamSpin starting...")
    try:
        asyncio.run(run_demo(
            settings,
            players=args.players,
            rounds=args.rounds,
            early_stop=args.early_stop,
            seed=args.seed,
        ))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("CamSpin stopped")


if __name__ == "__main__":
    main()
