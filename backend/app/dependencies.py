"""
FastAPI dependencies that hand the per-app services to the routers.

All services hang off ``app.state`` (see ``app.main.create_app``), so tests can
build an app over a temporary directory and swap the transport without
patching module globals.
"""

from fastapi import Request

from app.config import Settings
from app.services.attachment_store import AttachmentStore
from app.services.mail_sender import MailTransport
from app.services.template_store import MessageTemplateStore, SubjectTemplateStore
from app.services.upload_intake import UploadIntake


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_attachment_store(request: Request) -> AttachmentStore:
    return request.app.state.attachment_store


def get_upload_intake(request: Request) -> UploadIntake:
    return request.app.state.upload_intake


def get_subject_store(request: Request) -> SubjectTemplateStore:
    return request.app.state.subject_store


def get_message_store(request: Request) -> MessageTemplateStore:
    return request.app.state.message_store


def get_transport(request: Request) -> MailTransport:
    return request.app.state.transport
