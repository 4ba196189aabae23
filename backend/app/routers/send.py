"""
Send endpoint.

  POST /send-email   — compose and send a message, saving fresh uploads for reuse

Request (multipart/form-data):
  to             recipient address, or several separated by commas
  subject        subject line
  message        plain-text body (rendered to HTML with <br> line breaks)
  senderName     optional display name for the From header
  attachments    0–10 files, each at most 10 MB
  selectedFiles  names of saved attachments to include (repeatable)

Uploads are staged first and only moved into the saved-files directory after
the provider accepts the message. On any failure they are deleted.
"""

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.auth import get_provider_token
from app.config import Settings
from app.dependencies import get_attachment_store, get_settings, get_transport, get_upload_intake
from app.errors import MailerError, TransportError
from app.models.mail import ActionResponse
from app.services.attachment_store import AttachmentStore
from app.services.mail_composer import Sender, compose
from app.services.mail_sender import MailTransport
from app.services.upload_intake import UploadIntake

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send-email", response_model=ActionResponse)
async def send_email(
    to: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    message: Optional[str] = Form(None),
    sender_name: Optional[str] = Form(None, alias="senderName"),
    attachments: Optional[List[Union[UploadFile, str]]] = File(None),
    selected_files: Optional[List[str]] = Form(None, alias="selectedFiles"),
    settings: Settings = Depends(get_settings),
    store: AttachmentStore = Depends(get_attachment_store),
    intake: UploadIntake = Depends(get_upload_intake),
    transport: MailTransport = Depends(get_transport),
    access_token: Optional[str] = Depends(get_provider_token),
) -> ActionResponse:
    """
    Compose and send an email.

    Field validation happens before the transport is called, so a request
    missing To/Subject/Message never reaches the provider and never saves files.
    """
    # An attachments field with no file in it arrives as an empty string.
    uploads = [a for a in attachments or [] if not isinstance(a, str)]
    # Upload limits are enforced here, before anything is composed.
    staged = await intake.stage(uploads)

    sender = Sender(
        email=settings.sender_email,
        name=(sender_name or "").strip() or settings.sender_name,
    )

    try:
        composed = compose(
            recipient=to,
            subject=subject,
            body=message,
            uploads=staged,
            selected_names=selected_files or [],
            store=store,
            sender=sender,
        )
        await transport.send(composed.message, access_token=access_token)
    except MailerError:
        intake.discard(staged)
        raise
    except Exception as e:
        intake.discard(staged)
        logger.exception("Unexpected error while sending email")
        raise TransportError(f"Failed to send email: {e}")

    # The message is out; failing to save the uploads must not turn that into
    # an error for the caller.
    try:
        saved = intake.promote(composed.to_promote)
    except OSError as e:
        logger.error(f"Email sent but saving uploads failed: {e}")
        intake.discard(composed.to_promote)
        saved = []

    logger.info(
        f"Email sent to {len(composed.message.recipients)} recipient(s); "
        f"{len(composed.message.attachments)} attachment(s), {len(saved)} newly saved"
    )
    return ActionResponse(success=True, message="Email sent successfully!")
