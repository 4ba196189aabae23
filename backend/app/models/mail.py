"""
Pydantic models for the mail, file and template endpoints.
"""

from typing import List
from pydantic import BaseModel, ConfigDict, Field


class ActionResponse(BaseModel):
    """Outcome of a mutating request (also used for every error response)."""

    success: bool
    message: str


class FileListResponse(BaseModel):
    files: List[str]


class FileDeleteRequest(BaseModel):
    """Body of POST /files/delete. The browser client sends ``fileName``."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")


class SubjectListResponse(BaseModel):
    subjects: List[str]


class SubjectRequest(BaseModel):
    subject: str


class MessageListResponse(BaseModel):
    messages: List[str]


class MessageRequest(BaseModel):
    message: str
