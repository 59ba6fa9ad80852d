from typing import Dict

from pydantic import BaseModel, Field


class AuthenticationRequest(BaseModel):
    signature: str = Field(..., min_length=4)


class TokenOut(BaseModel):
    token: str


class ImageUploadOut(BaseModel):
    message: str = "successful"
    ipfsUrl: str


class ImageOut(BaseModel):
    ipfsUrl: str
    ipfsHash: str


class ImageCounts(BaseModel):
    voters: int
    candidates: int


class DatabaseStatsOut(BaseModel):
    success: bool = True
    stats: ImageCounts


class DatabaseResetOut(BaseModel):
    success: bool = True
    message: str = "Database reset successful"
    deleted: ImageCounts


def counts(data: Dict[str, int]) -> ImageCounts:
    return ImageCounts(voters=data["voters"], candidates=data["candidates"])
