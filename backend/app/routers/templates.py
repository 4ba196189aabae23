"""
Subject and message template endpoints.

  GET  /subjects          — list subject templates
  POST /subjects/add      — add a subject (duplicates are ignored)
  POST /subjects/delete   — delete a subject by exact text
  GET  /messages          — list message templates
  POST /messages/add      — add a message (duplicates are ignored)
  POST /messages/delete   — delete a message by exact text

Deleting text that is not stored still succeeds.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_message_store, get_subject_store
from app.models.mail import (
    ActionResponse,
    MessageListResponse,
    MessageRequest,
    SubjectListResponse,
    SubjectRequest,
)
from app.services.template_store import MessageTemplateStore, SubjectTemplateStore

router = APIRouter()


@router.get("/subjects", response_model=SubjectListResponse)
async def list_subjects(store: SubjectTemplateStore = Depends(get_subject_store)):
    return SubjectListResponse(subjects=store.list())


@router.post("/subjects/add", response_model=ActionResponse)
async def add_subject(body: SubjectRequest, store: SubjectTemplateStore = Depends(get_subject_store)):
    store.add(body.subject)
    return ActionResponse(success=True, message="Subject added successfully")


@router.post("/subjects/delete", response_model=ActionResponse)
async def delete_subject(body: SubjectRequest, store: SubjectTemplateStore = Depends(get_subject_store)):
    store.delete(body.subject)
    return ActionResponse(success=True, message="Subject deleted successfully")


@router.get("/messages", response_model=MessageListResponse)
async def list_messages(store: MessageTemplateStore = Depends(get_message_store)):
    return MessageListResponse(messages=store.list())


@router.post("/messages/add", response_model=ActionResponse)
async def add_message(body: MessageRequest, store: MessageTemplateStore = Depends(get_message_store)):
    store.add(body.message)
    return ActionResponse(success=True, message="Message added successfully")


@router.post("/messages/delete", response_model=ActionResponse)
async def delete_message(body: MessageRequest, store: MessageTemplateStore = Depends(get_message_store)):
    store.delete(body.message)
    return ActionResponse(success=True, message="Message deleted successfully")
