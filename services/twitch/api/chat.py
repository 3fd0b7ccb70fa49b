import asyncio
from typing import AsyncGenerator

from shared.logging.logger import get_logger

log = get_logger("twitch.chat")


class TwitchChatClient:
    """
    Minimal Twitch IRC-over-TLS line source.

    - No event loop creation on import.
    - Connection lifecycle is owned by callers (workers or scripts).
    - Yields raw protocol lines; parsing belongs to core.parser.
    - Answers PING itself so the connection stays alive.
    """

    HOST = "irc.chat.twitch.tv"
    PORT = 6697

    def __init__(
        self,
        token: str,
        nickname: str,
        channel: str,
        *,
        request_tags: bool = False,
    ):
        self.token = self._normalize_token(token)
        self.nickname = nickname
        self.channel = self._normalize_channel(channel)
        self.request_tags = request_tags

        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None

        self._connected = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        """
        Establish TLS IRC connection and join the configured channel.
        """
        if self._connected:
            log.debug("TwitchChatClient already connected")
            return

        log.info(
            f"Connecting to Twitch IRC ({self.HOST}:{self.PORT}) "
            f"as nick={self.nickname} channel=#{self.channel}"
        )
        self.reader, self.writer = await asyncio.open_connection(
            self.HOST, self.PORT, ssl=True
        )

        await self._send_raw(f"PASS {self.token}")
        await self._send_raw(f"NICK {self.nickname}")
        await self._send_raw(f"USER {self.nickname} 8 * :{self.nickname}")

        if self.request_tags:
            await self._send_raw("CAP REQ :twitch.tv/tags twitch.tv/commands")

        await self._send_raw(f"JOIN #{self.channel}")
        self._connected = True
        log.info(f"Joined Twitch channel #{self.channel}")

    async def close(self) -> None:
        if not self.writer:
            return

        log.info("Closing Twitch IRC connection")
        try:
            await self._send_raw("PART #" + self.channel)
        except (OSError, RuntimeError) as e:
            log.debug(f"PART failed during close: {e}")

        try:
            self.writer.close()
            await self.writer.wait_closed()
        except OSError as e:
            log.debug(f"Error during Twitch IRC close ignored: {e}")
        finally:
            self.reader = None
            self.writer = None
            self._connected = False

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #

    async def iter_lines(self) -> AsyncGenerator[str, None]:
        """
        Read protocol lines and yield them undecoded by grammar.

        Ends when the remote side closes the connection.
        """
        if not self.reader:
            raise RuntimeError("iter_lines called before connect()")

        while True:
            line = await self.reader.readline()

            if line == b"":
                log.warning("Twitch IRC connection closed by remote")
                self._connected = False
                break

            decoded = line.decode("utf-8", errors="ignore").rstrip("\r\n")
            if not decoded:
                continue

            if decoded.startswith("PING"):
                await self._handle_ping(decoded)
                continue

            yield decoded

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _send_raw(self, data: str) -> None:
        if not self.writer:
            raise RuntimeError("IRC writer is not initialized")

        payload = (data + "\r\n").encode("utf-8")
        self.writer.write(payload)
        await self.writer.drain()

    async def _handle_ping(self, raw: str) -> None:
        # Twitch IRC sends: PING :tmi.twitch.tv
        payload = raw.split(" ", 1)[-1]
        await self._send_raw(f"PONG {payload}")
        log.debug("Responded to Twitch PING")

    @staticmethod
    def _normalize_token(token: str) -> str:
        token = token.strip()
        if not token.startswith("oauth:"):
            return f"oauth:{token}"
        return token

    @staticmethod
    def _normalize_channel(channel: str) -> str:
        return channel.lstrip("#").strip().lower()
