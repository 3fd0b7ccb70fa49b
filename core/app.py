"""
======================================================================
 ChatPoll Runtime — Version v0.1.0 (Build 2026.10)
======================================================================
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from dotenv import load_dotenv

from core.config_loader import ConfigLoader
from core.cycle import CycleManager
from core.engine import PollEngine
from core.scheduler import Scheduler
from core.sinks import ExportSink, LoggingSink, PollSink, TranscriptSink
from core.tallies import PollQuery, TieBreakPolicy
from runtime.version import as_string
from services.replay.source import ReplayLineSource
from services.replay.worker import ReplayWorker
from services.twitch.workers.chat_worker import TwitchChatWorker
from shared.config.poll import PollConfig
from shared.logging.logger import get_logger
from shared.storage.transcript import Transcript

log = get_logger("core.app")


# ----------------------------------------------------------------------
# CONFIGURATION
# ----------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatpoll",
        description="Resolve live Twitch chat into a poll answer every cycle",
    )
    parser.add_argument("--config", help="Path to a poll config JSON file")
    parser.add_argument("--channel", help="Twitch channel to join (without #)")
    parser.add_argument("--nick", help="Bot nickname (defaults to channel name)")
    parser.add_argument("--token", help="OAuth token (with or without oauth: prefix)")
    parser.add_argument(
        "--tags",
        action="store_true",
        help="Request IRCv3 message tags from Twitch",
    )
    parser.add_argument("--replay", help="Replay raw IRC lines from a file instead of Twitch")
    parser.add_argument(
        "--replay-interval",
        type=float,
        default=0.0,
        help="Seconds between replayed lines",
    )
    parser.add_argument("--candidates", help="Comma-separated candidate answers")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in TieBreakPolicy],
        help="Tie-break policy",
    )
    parser.add_argument("--duration", type=float, help="Cycle duration in seconds")
    parser.add_argument(
        "--dedup",
        action="store_true",
        default=None,
        help="Allow one counted answer per viewer per cycle",
    )
    parser.add_argument(
        "--least",
        action="store_true",
        help="Resolve the least common answer instead of the most common",
    )
    parser.add_argument("--export", help="Write poll results JSON to this path")
    parser.add_argument("--transcript", help="Mirror the chat transcript to this JSONL path")
    return parser


def apply_overrides(config: PollConfig, args: argparse.Namespace) -> PollConfig:
    if args.candidates:
        candidates = [c.strip() for c in args.candidates.split(",") if c.strip()]
        if candidates:
            config.candidates = candidates
    if args.policy:
        config.tie_break_policy = TieBreakPolicy.parse(args.policy)
    if args.duration is not None:
        if args.duration > 0:
            config.cycle_duration_seconds = args.duration
        else:
            log.warning(f"Ignoring non-positive --duration {args.duration}")
    if args.dedup is not None:
        config.dedup_per_viewer = bool(args.dedup)
    if args.least:
        config.query = PollQuery.LEAST_COMMON
    if args.export:
        config.export_path = args.export
    if args.transcript:
        config.transcript_path = args.transcript
    return config


def build_sinks(config: PollConfig) -> List[PollSink]:
    sinks: List[PollSink] = [LoggingSink()]
    if config.export_path:
        sinks.append(ExportSink(config.export_path))
    if config.transcript_path:
        sinks.append(TranscriptSink(config.transcript_path))
    return sinks


# ----------------------------------------------------------------------
# MAIN
# ----------------------------------------------------------------------

async def main(stop_event: asyncio.Event, args: argparse.Namespace) -> None:
    load_dotenv()
    log.info("Environment variables loaded")
    log.info(f"{as_string()} booting")

    loader = ConfigLoader(args.config)
    config = apply_overrides(loader.load(), args)

    transcript = Transcript()
    engine = PollEngine(
        config.candidates,
        dedup_per_viewer=config.dedup_per_viewer,
        policy=config.tie_break_policy,
        transcript=transcript,
    )
    sinks = build_sinks(config)
    cycle = CycleManager(
        engine,
        duration_seconds=config.cycle_duration_seconds,
        query=config.query,
        sinks=sinks,
    )
    scheduler = Scheduler(cycle, tick_interval=config.tick_interval_seconds)

    log.info(
        f"Poll: candidates={config.candidates} query={config.query.value} "
        f"policy={config.tie_break_policy.value} dedup={config.dedup_per_viewer} "
        f"cycle={config.cycle_duration_seconds:g}s"
    )

    # --------------------------------------------------
    # LINE SOURCE
    # --------------------------------------------------
    if args.replay:
        worker = ReplayWorker(
            engine=engine,
            source=ReplayLineSource(args.replay, interval_seconds=args.replay_interval),
            sinks=sinks,
        )
    else:
        creds = loader.twitch_credentials()
        token = args.token or creds.token
        channel = args.channel or creds.channel
        nickname = args.nick or creds.nickname or channel
        if not token or not channel:
            raise RuntimeError(
                "Missing Twitch credentials. Provide --token/--channel or set "
                "TWITCH_OAUTH_TOKEN and TWITCH_CHANNEL"
            )
        worker = TwitchChatWorker(
            engine=engine,
            oauth_token=token,
            channel=channel,
            nickname=nickname,
            sinks=sinks,
            request_tags=args.tags,
        )

    worker_task = scheduler.start_worker(worker)
    for sink in sinks:
        if isinstance(sink, TranscriptSink):
            scheduler.start_worker(sink)
    scheduler.start_timer()

    # --------------------------------------------------
    # BLOCK UNTIL SHUTDOWN SIGNAL (OR WORKER EXIT)
    # --------------------------------------------------
    stop_waiter = asyncio.create_task(stop_event.wait())
    await asyncio.wait([stop_waiter, worker_task], return_when=asyncio.FIRST_COMPLETED)
    stop_waiter.cancel()

    failure = _worker_failure(worker, worker_task)
    if failure is not None:
        log.error(f"Ingestion worker {type(worker).__name__} failed: {failure}")
    elif isinstance(worker, ReplayWorker) and worker_task.done() and not stop_event.is_set():
        log.info("Replay exhausted; resolving final cycle")
        cycle.expire()

    log.info("Shutdown initiated")

    try:
        await scheduler.shutdown()
    except Exception as e:
        log.warning(f"Scheduler shutdown error ignored: {e}")

    engine.stop()
    log.info(f"ChatPoll stopped ({len(transcript)} transcript line(s))")

    if failure is not None:
        raise RuntimeError(f"Ingestion stopped: {failure}")


def _worker_failure(worker, task: asyncio.Task) -> Optional[BaseException]:
    if task.done() and not task.cancelled() and task.exception() is not None:
        return task.exception()
    return getattr(worker, "error", None)


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    """
    Windows-safe Ctrl+C handler.
    Uses signal.signal + asyncio.Event to unwind cleanly.
    """

    def _handler(signum, frame):
        loop.call_soon_threadsafe(stop_event.set)

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError) as e:
        log.debug(f"Signal handlers not installed: {e}")


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    _install_signal_handlers(loop, stop_event)

    exit_code = 0
    try:
        loop.run_until_complete(main(stop_event, args))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received — shutdown initiated")
        stop_event.set()

    except RuntimeError as e:
        log.error(str(e))
        exit_code = 1

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        loop.run_until_complete(loop.shutdown_asyncgens())

        asyncio.set_event_loop(None)
        loop.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(run())
