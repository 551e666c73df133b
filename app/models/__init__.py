from app.models.base import Base
from app.models.runs import IngestionRun
from app.models.unified import UnifiedRecord

__all__ = [
    "Base",
    "IngestionRun",
    "UnifiedRecord",
]
