"""Business logic services for the threadhub application."""

from .blob_store import BlobStore, BlobStoreError, LocalBlobStore, StoredBlob, Upload
from .feed import FeedService, PageRequest
from .graph import CounterRepair, DeleteMode, DeleteOutcome, GraphMutationEngine, LikeResult
from .identity import IdentityService
from .sessions import ClientMeta, SessionManager
from .tokens import TokenPair, TokenService

__all__ = [
    "BlobStore",
    "BlobStoreError",
    "ClientMeta",
    "CounterRepair",
    "DeleteMode",
    "DeleteOutcome",
    "FeedService",
    "GraphMutationEngine",
    "IdentityService",
    "LikeResult",
    "LocalBlobStore",
    "PageRequest",
    "SessionManager",
    "StoredBlob",
    "TokenPair",
    "TokenService",
    "Upload",
]
