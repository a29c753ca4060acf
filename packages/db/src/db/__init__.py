# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService
from .enums import (
    DealSection,
    FlowNamespace,
    ProgressScope,
    StepToken,
)
from .models import StorageEntry

__all__ = [
    "Base",
    "DatabaseService",
    "__version__",
    # Enums
    "DealSection",
    "FlowNamespace",
    "ProgressScope",
    "StepToken",
    # Models
    "StorageEntry",
]
