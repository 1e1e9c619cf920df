"""Write services for the lifecycle kernel."""

from lifecycle_kernel.services.dictionary_service import DictionaryService
from lifecycle_kernel.services.trajectory_store import TrajectoryStore

__all__ = [
    "DictionaryService",
    "TrajectoryStore",
]
