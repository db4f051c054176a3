"""API Routers - FastAPI endpoint handlers"""

from . import health
from . import media
from . import messages

__all__ = ["health", "media", "messages"]
