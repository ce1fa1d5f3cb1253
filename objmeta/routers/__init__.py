# FastAPI Routers
from objmeta.routers.attributes import metadata_router, tagging_router
from objmeta.routers.health import router as health_router
from objmeta.routers.objects import router as objects_router
from objmeta.routers.permissions import object_router as object_permissions_router
from objmeta.routers.permissions import router as permissions_router

__all__ = [
    "health_router",
    "objects_router",
    "tagging_router",
    "metadata_router",
    "permissions_router",
    "object_permissions_router",
]
