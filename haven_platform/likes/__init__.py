# Public surface of the liked-listings engine.
from ._cache_payload import LIKED_CACHE_KEY, LikedPayload, decode_liked, encode_liked, read_liked
from ._dispatcher import DebouncedDispatcher
from ._ledger import PendingLedger
from ._reconciler import LikedSetReconciler
from ._session import SessionBinder
from ._types import FlushReport, KeyValueCache, PendingBatch, RemoteStore

__all__ = [
    "LIKED_CACHE_KEY",
    "DebouncedDispatcher",
    "FlushReport",
    "KeyValueCache",
    "LikedPayload",
    "LikedSetReconciler",
    "PendingBatch",
    "PendingLedger",
    "RemoteStore",
    "SessionBinder",
    "decode_liked",
    "encode_liked",
    "read_liked",
]
