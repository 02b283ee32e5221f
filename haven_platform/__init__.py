# Public surface of the Haven platform package.
from .collection_loader import CollectionLoader, LoadState
from .listings import Listing

__version__ = "0.1.0"

__all__ = ["CollectionLoader", "LoadState", "Listing", "__version__"]
