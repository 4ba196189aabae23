"""
Saved attachment endpoints.

  GET  /files          — list saved attachments
  POST /files/delete   — delete one saved attachment by name
"""

import logging

from fastapi import APIRouter, Depends

from app.dependencies import get_attachment_store
from app.models.mail import ActionResponse, FileDeleteRequest, FileListResponse
from app.services.attachment_store import AttachmentStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=FileListResponse)
async def list_files(store: AttachmentStore = Depends(get_attachment_store)) -> FileListResponse:
    return FileListResponse(files=store.list())


@router.post("/delete", response_model=ActionResponse)
async def delete_file(
    body: FileDeleteRequest,
    store: AttachmentStore = Depends(get_attachment_store),
) -> ActionResponse:
    """Delete a saved attachment. 404 if it does not exist."""
    store.delete(body.file_name)
    return ActionResponse(success=True, message="File deleted successfully")
