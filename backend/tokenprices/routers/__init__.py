# API Routers

from . import health, prices

__all__ = ["health", "prices"]
