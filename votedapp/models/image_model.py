from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ImageRole(str, Enum):
    voter = "voter"
    candidate = "candidate"


class ImageRecord(BaseModel):
    accountAddress: str = Field(..., example="0x00912Bf03a1d1768C8c256649a805089b672Ac31")
    ipfsHash: str
    ipfsUrl: str
    createdAt: Optional[datetime] = None
