from __future__ import annotations

import asyncio
import logging
import sys

from channel.api import ChannelAPI
from channel.config import CHANNEL_CONFIG, load_config
from channel.ui import ChannelCLI, QueueListener
from talk.protocol.errors import ProtocolError


async def run_client() -> int:
    load_config()
    logging.basicConfig(level=CHANNEL_CONFIG["log_level"].upper())
    listener = QueueListener()

    if CHANNEL_CONFIG["token"]:
        channel = ChannelAPI.join(CHANNEL_CONFIG["base_url"], CHANNEL_CONFIG["token"], listener)
    elif CHANNEL_CONFIG["channel_key"]:
        try:
            channel = await ChannelAPI.create(CHANNEL_CONFIG["base_url"], CHANNEL_CONFIG["channel_key"], listener)
        except ProtocolError as exc:
            logging.getLogger(__name__).error("Could not create channel: %s", exc)
            return 1
    else:
        print("Set CHANNEL_TOKEN or CHANNEL_CHANNEL_KEY", file=sys.stderr)
        return 2

    async with channel:
        if not await channel.open():
            return 1
        await ChannelCLI(channel, listener, CHANNEL_CONFIG["send_path"]).run()
    return 0


def main() -> None:
    sys.exit(asyncio.run(run_client()))


if __name__ == "__main__":
    main()
