# storage_mongo.py
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from votedapp.config import CANDIDATES_COLLECTION_NAME, VOTERS_COLLECTION_NAME
from votedapp.models.image_model import ImageRecord, ImageRole

logger = logging.getLogger(__name__)

COLLECTIONS = {
    ImageRole.voter: VOTERS_COLLECTION_NAME,
    ImageRole.candidate: CANDIDATES_COLLECTION_NAME,
}


class ImageStorage:
    def __init__(self, db: Database):
        """Bind the voter and candidate image collections of ``db``"""
        self.db = db
        self.collections = {role: db[name] for role, name in COLLECTIONS.items()}

        # Lookups filter by address and pick the newest record
        for collection in self.collections.values():
            collection.create_index([("accountAddress", 1), ("createdAt", DESCENDING)])

    def save_image(self, role: ImageRole, address: str, ipfs_hash: str, ipfs_url: str) -> ImageRecord:
        """
        Insert an image record for a wallet address.

        Args:
            role: voter or candidate
            address: checksummed wallet address the token was issued for
            ipfs_hash: content address returned by the pinning service
            ipfs_url: gateway URL for the pinned content

        Returns:
            The stored record
        """
        record = ImageRecord(
            accountAddress=address,
            ipfsHash=ipfs_hash,
            ipfsUrl=ipfs_url,
            createdAt=datetime.now(timezone.utc),
        )
        result = self.collections[role].insert_one(record.model_dump())
        logger.info(f"Saved {role.value} image for {address} ({result.inserted_id})")
        return record

    def find_image(self, role: ImageRole, address: str) -> Optional[ImageRecord]:
        """
        Return the most recent image record for an address, or None.
        Duplicate uploads are allowed, so the newest one wins.
        """
        doc = self.collections[role].find_one(
            {"accountAddress": address},
            sort=[("createdAt", DESCENDING), ("_id", DESCENDING)],
        )
        if not doc:
            return None
        doc.pop("_id", None)
        return ImageRecord(**doc)

    def count_images(self) -> Dict[str, int]:
        return {
            "voters": self.collections[ImageRole.voter].count_documents({}),
            "candidates": self.collections[ImageRole.candidate].count_documents({}),
        }

    def reset_all(self) -> Dict[str, int]:
        """Delete every voter and candidate image record. Irreversible."""
        voters = self.collections[ImageRole.voter].delete_many({})
        candidates = self.collections[ImageRole.candidate].delete_many({})
        logger.info(
            f"Deleted {voters.deleted_count} voter records and "
            f"{candidates.deleted_count} candidate records"
        )
        return {"voters": voters.deleted_count, "candidates": candidates.deleted_count}
