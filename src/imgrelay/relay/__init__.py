"""External messaging platform used as durable image storage."""

from imgrelay.relay.telegram import TelegramRelay

__all__ = ["TelegramRelay"]
