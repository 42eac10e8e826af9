"""Console adapter: drives the dispatcher from stdin for local use.

Every line is treated as a message from the configured owner in a
single text channel of a one-role guild. Replies are printed with the
provenance-tagged log line.
"""

import asyncio
import sys
import threading
from typing import Optional, TextIO

import structlog

from .chat import Channel, ChannelType, Guild, Member, Message, Role
from .commands import CommandManager
from .logging_config import log

logger = structlog.get_logger("cmdgate.commands")

CONSOLE_LABEL = "Console"


async def _print_reply(text: str) -> None:
    log(CONSOLE_LABEL, text)


class ConsoleAdapter:
    """Turns stdin lines into Messages.

    Args:
        manager: Dispatcher that receives each message.
        user_id: Identity every console message is sent as.
        direct: Treat the console as a DM channel instead of a text channel.
        stream: Line source. Defaults to stdin.
    """

    def __init__(
        self,
        manager: CommandManager,
        user_id: str,
        direct: bool = False,
        stream: Optional[TextIO] = None,
    ):
        self.manager = manager
        self.user_id = user_id
        self.stream = stream if stream is not None else sys.stdin
        self._reader: Optional[threading.Thread] = None
        self.channel = Channel(
            id="console",
            type=ChannelType.DM if direct else ChannelType.TEXT,
            send=_print_reply,
        )
        if direct:
            self.member: Optional[Member] = None
            self.guild: Optional[Guild] = None
        else:
            owner_role = Role(id="console-owner", position=1, name="owner")
            self.member = Member.with_roles(user_id, [owner_role])
            self.guild = Guild.with_roles("console", [owner_role])

    def make_message(self, content: str) -> Message:
        return Message(
            content=content,
            channel=self.channel,
            author_id=self.user_id,
            member=self.member,
            guild=self.guild,
        )

    async def handle_line(self, line: str):
        line = line.strip()
        if not line:
            return None
        return await self.manager.dispatch(self.make_message(line))

    def _start_reader(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
        """Read ``stream`` on a daemon thread; None marks EOF."""
        def feed(line: Optional[str]) -> bool:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            except RuntimeError:
                # Event loop already closed
                return False
            return True

        def read_lines() -> None:
            for line in iter(self.stream.readline, ""):
                if not feed(line):
                    return
            feed(None)

        self._reader = threading.Thread(target=read_lines, name="console-reader", daemon=True)
        self._reader.start()

    async def run(self, stop: asyncio.Event) -> None:
        """Read lines until EOF or ``stop`` is set.

        The blocking read happens on a daemon thread, so setting ``stop``
        returns promptly even while a read is pending.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        self._start_reader(loop, queue)

        stop_task = asyncio.create_task(stop.wait())
        line_task: Optional[asyncio.Task] = None
        try:
            while not stop.is_set():
                line_task = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {line_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if line_task not in done:
                    break
                line = line_task.result()
                if line is None:
                    break
                try:
                    await self.handle_line(line)
                except Exception as e:
                    # One failing command must not end the session
                    logger.error("console_command_error", error=str(e))
        finally:
            pending = [t for t in (line_task, stop_task) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
