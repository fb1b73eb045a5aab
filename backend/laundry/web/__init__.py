"""HTTP surface (FastAPI)."""

from laundry.web.app import build_services, create_app

__all__ = ["build_services", "create_app"]
