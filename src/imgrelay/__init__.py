"""imgrelay: image cache with a Telegram-backed relay tier."""

__version__ = "0.1.0"
