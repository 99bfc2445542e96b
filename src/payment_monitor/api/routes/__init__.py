"""API routes package.

Routers are organized by concern:

- status: service banner, health check and activity logs
- manual: manual synthetic failed payment trigger
- webhooks: Stripe webhook ingress

All routers are registered in main.py at the root path.
"""

from payment_monitor.api.routes.manual import router as manual_router
from payment_monitor.api.routes.status import router as status_router
from payment_monitor.api.routes.webhooks import router as webhooks_router

__all__ = [
    "manual_router",
    "status_router",
    "webhooks_router",
]
