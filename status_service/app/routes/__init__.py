from .status import router as status_router
from .health import router as health_router

__all__ = ["status_router", "health_router"]
