from .cli import ChannelCLI, QueueListener

__all__ = ["ChannelCLI", "QueueListener"]
