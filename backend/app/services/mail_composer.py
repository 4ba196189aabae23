"""
Composition of outgoing messages.

``compose`` validates a send request and turns it into an OutboundMessage:
fresh uploads first, then whichever saved attachments still exist. It does not
touch storage; the caller promotes ``ComposedMail.to_promote`` only after the
transport has accepted the message.

Raw-message providers (the Gmail API) want the MIME text itself. That is built
in two steps so tests can inspect the structure before it is flattened:

    envelope = build_envelope(message)          # headers + parts
    raw = encode_raw_message(serialize_envelope(envelope))
"""

import base64
import html
import re
import time
from dataclasses import dataclass, field
from email.header import Header
from email.utils import formataddr
from typing import Iterable, List, Optional, Sequence, Tuple

from app.errors import InvalidRequest
from app.services.attachment_store import Attachment, AttachmentStore
from app.services.upload_intake import StagedUpload

_BASE64_LINE_LENGTH = 76
_HEADER_BREAK = re.compile(r"[\r\n]")


@dataclass(frozen=True)
class Sender:
    email: str
    name: str = ""

    def formatted(self) -> str:
        if not self.name:
            return self.email
        return formataddr((self.name, self.email))


@dataclass
class OutboundMessage:
    """A fully composed email, ready for a transport."""

    recipients: List[str]
    subject: str
    text_body: str
    html_body: str
    sender: Sender
    attachments: List[Attachment] = field(default_factory=list)


@dataclass
class ComposedMail:
    message: OutboundMessage
    # Uploads to move into the attachment store once the send succeeds.
    to_promote: List[StagedUpload] = field(default_factory=list)


def render_html(body: str) -> str:
    """
    HTML rendering of a plain-text body.

    The text is escaped first, so markup typed into the message shows up
    literally instead of being interpreted by the recipient's mail client.
    """
    return "<p>" + html.escape(body, quote=False).replace("\n", "<br>") + "</p>"


def split_recipients(recipient: str) -> List[str]:
    return [addr.strip() for addr in recipient.split(",") if addr.strip()]


def compose(
    recipient: Optional[str],
    subject: Optional[str],
    body: Optional[str],
    uploads: Sequence[StagedUpload],
    selected_names: Iterable[str],
    store: AttachmentStore,
    sender: Sender,
) -> ComposedMail:
    """
    Validate a send request and build the message.

    Attachment order is every upload (request order) followed by every selected
    name that exists in ``store`` (request order). Selected names that are not
    stored are skipped.

    Raises:
        InvalidRequest: recipient, subject or body missing or blank, or a
            header value (recipient, subject, sender name) spanning lines.
    """
    if any(v is None or not v.strip() for v in (recipient, subject, body)):
        raise InvalidRequest("To, Subject and Message are required")

    for label, value in (("To", recipient), ("Subject", subject), ("Sender name", sender.name)):
        if _HEADER_BREAK.search(value):
            raise InvalidRequest(f"{label} must not contain line breaks")

    recipients = split_recipients(recipient)
    if not recipients:
        raise InvalidRequest("To must contain at least one address")
    subject = subject.strip()

    attachments = [upload.as_attachment() for upload in uploads]
    for name in selected_names:
        if not name:
            continue
        saved = store.get(name)
        if saved is not None:
            attachments.append(saved)

    message = OutboundMessage(
        recipients=recipients,
        subject=subject,
        text_body=body,
        html_body=render_html(body),
        sender=sender,
        attachments=attachments,
    )
    return ComposedMail(message=message, to_promote=list(uploads))


# ---------------------------------------------------------------------------
# Raw MIME envelope
# ---------------------------------------------------------------------------

@dataclass
class MimePart:
    headers: List[Tuple[str, str]]
    body: str


@dataclass
class MimeEnvelope:
    """Top-level headers plus body parts; ``boundary`` is None for a single part."""

    headers: List[Tuple[str, str]]
    parts: List[MimePart]
    boundary: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None


def new_boundary() -> str:
    return f"boundary_{int(time.time() * 1000)}"


def _encode_subject(subject: str) -> str:
    if subject.isascii():
        return subject
    return Header(subject, "utf-8").encode(linesep="\r\n")


def _wrap_base64(data: bytes) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return "\r\n".join(
        encoded[i:i + _BASE64_LINE_LENGTH]
        for i in range(0, len(encoded), _BASE64_LINE_LENGTH)
    )


def _attachment_part(attachment: Attachment) -> MimePart:
    name = attachment.filename.replace('"', "")
    return MimePart(
        headers=[
            ("Content-Type", f'{attachment.media_type}; name="{name}"'),
            ("Content-Transfer-Encoding", "base64"),
            ("Content-Disposition", f'attachment; filename="{name}"'),
        ],
        body=_wrap_base64(attachment.read_bytes()),
    )


def build_envelope(message: OutboundMessage, boundary: Optional[str] = None) -> MimeEnvelope:
    """
    Structured MIME form of a message: an HTML part, plus one base64 part per
    attachment when there are any. Attachment content is read here.
    """
    headers = []
    # The Gmail API fills in From from the authorised account when it is absent.
    if message.sender.email:
        headers.append(("From", message.sender.formatted()))
    headers += [
        ("To", ", ".join(message.recipients)),
        ("Subject", _encode_subject(message.subject)),
        ("MIME-Version", "1.0"),
    ]
    html_part = MimePart(
        headers=[("Content-Type", "text/html; charset=UTF-8")],
        body=message.html_body,
    )

    if not message.attachments:
        return MimeEnvelope(headers=headers, parts=[html_part])

    boundary = boundary or new_boundary()
    headers.append(("Content-Type", f'multipart/mixed; boundary="{boundary}"'))
    parts = [html_part] + [_attachment_part(a) for a in message.attachments]
    return MimeEnvelope(headers=headers, parts=parts, boundary=boundary)


def _header_lines(headers: List[Tuple[str, str]]) -> List[str]:
    return [f"{key}: {value}" for key, value in headers]


def serialize_envelope(envelope: MimeEnvelope) -> str:
    """Flatten an envelope to CRLF-separated MIME text."""
    lines = _header_lines(envelope.headers)

    if envelope.boundary is None:
        part = envelope.parts[0]
        lines.extend(_header_lines(part.headers))
        lines.append("")
        lines.append(part.body)
        return "\r\n".join(lines)

    lines.append("")
    for part in envelope.parts:
        lines.append(f"--{envelope.boundary}")
        lines.extend(_header_lines(part.headers))
        lines.append("")
        lines.append(part.body)
    lines.append(f"--{envelope.boundary}--")
    return "\r\n".join(lines)


def encode_raw_message(raw: str) -> str:
    """base64url-encode MIME text without ``=`` padding."""
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")
