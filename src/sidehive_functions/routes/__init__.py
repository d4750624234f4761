"""HTTP routes, mounted under /functions."""

from sidehive_functions.routes.claim_routes import router as claim_router
from sidehive_functions.routes.generation_routes import router as generation_router
from sidehive_functions.routes.session_routes import router as session_router

__all__ = ["claim_router", "generation_router", "session_router"]
