from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional, Tuple

from channel.api import ChannelAPI

logger = logging.getLogger(__name__)

ChannelEvent = Tuple[str, tuple]


class QueueListener:
    """Listener that hands every channel event to an asyncio queue for the console to print."""

    def __init__(self) -> None:
        self.events: asyncio.Queue[ChannelEvent] = asyncio.Queue()

    def on_open(self) -> None:
        self.events.put_nowait(("open", ()))

    def on_message(self, payload: str) -> None:
        self.events.put_nowait(("message", (payload,)))

    def on_error(self, status_code: int, status_text: str) -> None:
        self.events.put_nowait(("error", (status_code, status_text)))

    def on_close(self) -> None:
        self.events.put_nowait(("close", ()))

    async def next_event(self, timeout: Optional[float] = None) -> ChannelEvent:
        return await asyncio.wait_for(self.events.get(), timeout)


class ChannelCLI:
    """Simple async console: prints channel events, sends typed lines."""

    def __init__(self, channel: ChannelAPI, listener: QueueListener, send_path: Optional[str] = None) -> None:
        self.channel = channel
        self.listener = listener
        self.send_path = send_path
        self._printer_task: asyncio.Task | None = None

    async def run(self) -> None:
        logger.info("Console ready. Type 'help' for commands.")
        loop = asyncio.get_event_loop()
        self._printer_task = asyncio.create_task(self._print_events(), name="cli-event-printer")
        try:
            while True:
                line = await loop.run_in_executor(None, input, "> ")
                parts = line.strip().split(maxsplit=1)
                if not parts:
                    continue
                match parts[0]:
                    case "help":
                        self._show_help()
                    case "send":
                        await self._handle_send(parts)
                    case "state":
                        print(f"Channel is {self.channel.ready_state.value}")
                    case "quit":
                        await self.channel.close()
                        break
                    case _:
                        print("Unknown command")
        finally:
            if self._printer_task:
                self._printer_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._printer_task

    def _show_help(self) -> None:
        print("Commands: send <text>, state, quit")

    async def _handle_send(self, parts: list[str]) -> None:
        if len(parts) < 2:
            print("Usage: send <text>")
            return
        if not await self.channel.send(parts[1], self.send_path):
            print(f"Send failed: channel is {self.channel.ready_state.value}")

    async def _print_events(self) -> None:
        while True:
            kind, args = await self.listener.next_event()
            match kind:
                case "message":
                    print(f"\n<< {args[0]}")
                case "error":
                    print(f"\n!! error {args[0]}: {args[1]}")
                case _:
                    print(f"\n-- channel {kind}")
            print("> ", end="", flush=True)


__all__ = ["ChannelCLI", "QueueListener"]
