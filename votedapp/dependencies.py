from typing import Callable, Optional

from votedapp.database.connection import get_database
from votedapp.pinata import PinataClient
from votedapp.storage_mongo import ImageStorage

_storage: Optional[ImageStorage] = None


def get_image_storage() -> ImageStorage:
    """Get or create the image storage singleton."""
    global _storage
    if _storage is None:
        _storage = ImageStorage(get_database())
    return _storage


def get_pinata_factory() -> Callable[[], PinataClient]:
    # One client per upload
    return PinataClient
