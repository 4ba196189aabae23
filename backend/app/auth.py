"""
Provider access token extraction.

The Gmail transport sends on behalf of the signed-in Google account, so the
send request must carry that account's OAuth access token. Obtaining and
refreshing the token (the consent flow) happens outside this service; here we
only read it from the ``Authorization`` header.

SMTP delivery authenticates with the configured relay credentials and needs
no token.
"""

from typing import Optional

from fastapi import Depends, Header

from app.dependencies import get_transport
from app.errors import AuthenticationRequired
from app.services.mail_sender import MailTransport


def parse_bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    Raises:
        AuthenticationRequired: if the header is missing or malformed.
    """
    if not authorization:
        raise AuthenticationRequired("Please login with Google first")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise AuthenticationRequired("Invalid authentication credentials")

    return parts[1]


async def get_provider_token(
    authorization: Optional[str] = Header(None),
    transport: MailTransport = Depends(get_transport),
) -> Optional[str]:
    """
    FastAPI dependency: the provider access token, or None for transports that
    do not need one.

    Raises:
        AuthenticationRequired: the transport needs a token and the header is
            missing or malformed.
    """
    if not transport.requires_token:
        return None
    return parse_bearer_token(authorization)
