from app.api.routes.data import router as data_router
from app.api.routes.health import router as health_router
from app.api.routes.ingest import router as ingest_router

__all__ = ["data_router", "health_router", "ingest_router"]
