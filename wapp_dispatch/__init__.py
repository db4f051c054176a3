"""WhatsApp outbound dispatch pipeline and media storage"""

__version__ = "1.0.0"
