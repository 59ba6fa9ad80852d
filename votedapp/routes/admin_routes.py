import logging

from fastapi import APIRouter, Depends, HTTPException

from votedapp.dependencies import get_image_storage
from votedapp.schemas import DatabaseResetOut, DatabaseStatsOut, counts
from votedapp.security import get_account_address
from votedapp.storage_mongo import ImageStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post("/reset-database", response_model=DatabaseResetOut)
def reset_database(
    address: str = Depends(get_account_address),
    storage: ImageStorage = Depends(get_image_storage),
):
    """Delete all voter and candidate image records."""
    logger.info(f"Reset database request from address: {address}")
    try:
        deleted = storage.reset_all()
    except Exception as e:
        logger.error(f"Database reset error: {e}")
        raise HTTPException(status_code=500, detail="Failed to reset database")
    return {"success": True, "message": "Database reset successful", "deleted": counts(deleted)}


@router.get("/database-stats", response_model=DatabaseStatsOut)
def database_stats(
    address: str = Depends(get_account_address),
    storage: ImageStorage = Depends(get_image_storage),
):
    try:
        stats = storage.count_images()
    except Exception as e:
        logger.error(f"Failed to get database stats: {e}")
        raise HTTPException(status_code=500, detail="Failed to get database statistics")
    return {"success": True, "stats": counts(stats)}
