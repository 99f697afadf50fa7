from typing import Optional

from pydantic import BaseModel


class UploadOut(BaseModel):
    success: bool = True
    message: str
    filename: str
    path: str
    size: int
    formattedSize: str
    mimetype: Optional[str] = None
    type: str
    field: str


class DeleteIn(BaseModel):
    filename: Optional[str] = None


class DeleteOut(BaseModel):
    success: bool = True
    message: str
    filename: str
