import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from votedapp.config import UPLOAD_TMP_DIR
from votedapp.dependencies import get_image_storage, get_pinata_factory
from votedapp.models.image_model import ImageRole
from votedapp.pinata import PinataConfigError, PinataUploadError
from votedapp.schemas import ImageOut, ImageUploadOut
from votedapp.security import get_account_address, normalize_address
from votedapp.storage_mongo import ImageStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Images"])

UPLOAD_DIR = Path(UPLOAD_TMP_DIR)


def write_temp_file(data: bytes) -> Path:
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    filepath = UPLOAD_DIR / f"temp-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}.png"
    with open(filepath, "wb") as f:
        f.write(data)
    return filepath


def upload_image(
    role: ImageRole,
    file: Optional[UploadFile],
    address: str,
    storage: ImageStorage,
    pinata_factory,
) -> dict:
    """
    Stage the upload on disk, pin it, then record the content address.
    The staged file is removed whatever step fails; no record is written unless pinning succeeded.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    data = file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    temp_path = None
    try:
        temp_path = write_temp_file(data)
        logger.info(f"Created temporary file: {temp_path}")

        try:
            with pinata_factory() as pinata:
                ipfs_hash, ipfs_url = pinata.pin_file(str(temp_path), address)
        except (PinataConfigError, PinataUploadError) as e:
            logger.error(f"Error uploading to Pinata: {e}")
            status = 500 if isinstance(e, PinataConfigError) else 502
            raise HTTPException(status_code=status, detail="Failed to upload image to IPFS")

        try:
            storage.save_image(role, address, ipfs_hash, ipfs_url)
        except Exception as e:
            # The pin stays on IPFS without a local reference
            logger.error(f"Pinned {ipfs_hash} but failed to save {role.value} record: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to save {role.value} image")

        return {"message": "successful", "ipfsUrl": ipfs_url}
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                os.remove(temp_path)
                logger.info(f"Cleaned up temporary file: {temp_path}")
            except OSError as e:
                logger.error(f"Failed to clean up temporary file {temp_path}: {e}")


def lookup_image(role: ImageRole, address: str, storage: ImageStorage) -> dict:
    try:
        address = normalize_address(address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Getting image for {role.value} address: {address}")
    record = storage.find_image(role, address)
    if record is None or not record.ipfsUrl:
        logger.info(f"No {role.value} image found for address: {address}")
        raise HTTPException(status_code=404, detail=f"{role.value.capitalize()} image not found")

    return {"ipfsUrl": record.ipfsUrl, "ipfsHash": record.ipfsHash}


@router.post("/postVoterImage", response_model=ImageUploadOut)
def post_voter_image(
    file: Optional[UploadFile] = File(None),
    address: str = Depends(get_account_address),
    storage: ImageStorage = Depends(get_image_storage),
    pinata_factory=Depends(get_pinata_factory),
):
    return upload_image(ImageRole.voter, file, address, storage, pinata_factory)


@router.post("/postCandidateImage", response_model=ImageUploadOut)
def post_candidate_image(
    file: Optional[UploadFile] = File(None),
    address: str = Depends(get_account_address),
    storage: ImageStorage = Depends(get_image_storage),
    pinata_factory=Depends(get_pinata_factory),
):
    return upload_image(ImageRole.candidate, file, address, storage, pinata_factory)


@router.get("/getVoterImage/{address}", response_model=ImageOut)
def get_voter_image(address: str, storage: ImageStorage = Depends(get_image_storage)):
    return lookup_image(ImageRole.voter, address, storage)


@router.get("/getCandidateImage/{address}", response_model=ImageOut)
def get_candidate_image(address: str, storage: ImageStorage = Depends(get_image_storage)):
    return lookup_image(ImageRole.candidate, address, storage)
