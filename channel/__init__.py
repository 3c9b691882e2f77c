"""
Client for the talk push channel: handshake, long-poll and listener dispatch.

    channel = ChannelAPI.join("https://example.appspot.com", token, listener)
    await channel.open()
"""

from .api import ChannelAPI
from .core import ReadyState, TransportError
from .listener import ChannelListener, Listener

__all__ = ["ChannelAPI", "ChannelListener", "Listener", "ReadyState", "TransportError"]
