"""
API routes - combined router from all domain modules.

The shared rate limiter lives here; every sub-router imports it from this
package.
"""

import os

from fastapi import APIRouter
from slowapi import Limiter
from slowapi.util import get_remote_address

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
limiter = Limiter(key_func=get_remote_address)
if IS_TEST_ENV:

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()

MUTATION_RATE_LIMIT = os.getenv("MUTATION_RATE_LIMIT", "60/minute")

# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from ladder.api.routes.health import router as health_router  # noqa: E402
from ladder.api.routes.players import router as players_router  # noqa: E402
from ladder.api.routes.seasons import router as seasons_router  # noqa: E402
from ladder.api.routes.admin import router as admin_router  # noqa: E402

router = APIRouter()
router.include_router(health_router)
router.include_router(players_router)
router.include_router(seasons_router)
router.include_router(admin_router)
