import asyncio
from typing import Iterable, List, Optional

from core.engine import PollEngine
from core.sinks import PollSink, broadcast_chat_line
from services.twitch.api.chat import TwitchChatClient
from shared.logging.logger import get_logger

log = get_logger("twitch.chat_worker")


class TwitchChatWorker:
    """
    Scheduler-owned Twitch ingestion worker (IRC over TLS).

    Responsibilities:
    - Own the TwitchChatClient lifecycle (connect, read, reconnect, shutdown)
    - Hand every raw line to the poll engine
    - Forward transcript-worthy chat lines to the display sinks
    - Remain cancellation-safe and free of side effects on import
    """

    def __init__(
        self,
        *,
        engine: PollEngine,
        oauth_token: str,
        channel: str,
        nickname: Optional[str] = None,
        sinks: Iterable[PollSink] = (),
        reconnect_delay: float = 5.0,
        max_reconnect_delay: float = 60.0,
        request_tags: bool = False,
        client: Optional[TwitchChatClient] = None,
    ):
        if not oauth_token:
            raise RuntimeError("Twitch oauth_token is required")
        if not channel:
            raise RuntimeError("Twitch channel is required")

        self.engine = engine
        self.channel = channel
        self.nickname = nickname or channel
        self.sinks: List[PollSink] = list(sinks)
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self._client = client or TwitchChatClient(
            token=oauth_token,
            nickname=self.nickname,
            channel=self.channel,
            request_tags=request_tags,
        )

        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------ #

    async def run(self) -> None:
        log.info(f"[#{self.channel}] Twitch chat worker starting")
        delay = self.reconnect_delay

        try:
            while not self._stop_event.is_set():
                try:
                    await self._client.connect()
                    delay = self.reconnect_delay
                    await self._pump()
                except OSError as e:
                    log.error(f"[#{self.channel}] Twitch connection error: {e}")
                except ValueError as e:
                    # StreamReader.readline raises ValueError past its line limit
                    log.error(f"[#{self.channel}] Twitch stream error: {e}")
                finally:
                    await self._client.close()

                if self._stop_event.is_set():
                    break

                log.info(f"[#{self.channel}] Reconnecting in {delay:.0f}s")
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_reconnect_delay)

        except asyncio.CancelledError:
            log.debug(f"[#{self.channel}] Twitch chat worker cancelled")
            raise
        finally:
            await self.shutdown()

    async def _pump(self) -> None:
        async for line in self._client.iter_lines():
            self.handle_line(line)
            if self._stop_event.is_set():
                break

    def handle_line(self, line: str) -> None:
        entry = self.engine.ingest_line(line)
        if entry is not None:
            broadcast_chat_line(self.sinks, entry)

    async def shutdown(self) -> None:
        if self._stop_event.is_set():
            return

        self._stop_event.set()
        await self._client.close()
        log.info(f"[#{self.channel}] Twitch chat worker stopped")

