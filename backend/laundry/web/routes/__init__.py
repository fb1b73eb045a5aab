"""HTTP route modules, one APIRouter each."""

from laundry.web.routes import admin, auth, orders, system, tracking, user

ROUTERS = (
    system.router,
    auth.router,
    orders.router,
    tracking.router,
    admin.router,
    user.router,
)

__all__ = ["ROUTERS"]
