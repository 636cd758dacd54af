"""HTTP API."""

from bazaar.api._app import STATUS_BY_CODE, router, create_app, unwrap
from bazaar.api._deps import (
    Services,
    build_services,
    get_services,
    current_actor,
)

__all__ = (
    "STATUS_BY_CODE",
    "router",
    "create_app",
    "unwrap",
    "Services",
    "build_services",
    "get_services",
    "current_actor",
)
