"""
QuickSend Backend API
FastAPI application for composing and sending email with reusable attachments
and templates.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Settings
from app.errors import MailerError
from app.routers import files, send, templates
from app.services.attachment_store import AttachmentStore
from app.services.mail_sender import MailTransport, build_transport
from app.services.template_store import MessageTemplateStore, SubjectTemplateStore
from app.services.upload_intake import UploadIntake

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _validation_message(exc: RequestValidationError) -> str:
    """First validation problem as a short sentence, e.g. 'subject: Field required'."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid request")


def register_exception_handlers(app: FastAPI) -> None:
    """Every failure becomes ``{"success": false, "message": ...}``."""

    @app.exception_handler(MailerError)
    async def mailer_error_handler(request: Request, exc: MailerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _failure(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _failure(400, _validation_message(exc))

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError):
        logger.error(f"{request.method} {request.url.path} filesystem error: {exc}")
        return _failure(500, exc.strerror or str(exc))


def create_app(settings: Optional[Settings] = None, transport: Optional[MailTransport] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: configuration; read from the environment when omitted.
        transport: mail transport; chosen from ``settings.mail_transport`` when
            omitted (tests pass a fake).
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="QuickSend API",
        description="Compose and send email with reusable attachments and templates",
        version="0.1.0",
    )

    store = AttachmentStore(settings.attachments_dir)
    app.state.settings = settings
    app.state.attachment_store = store
    app.state.upload_intake = UploadIntake(
        staging_dir=settings.staging_dir,
        store=store,
        max_files=settings.max_upload_files,
        max_file_bytes=settings.max_upload_bytes,
    )
    app.state.subject_store = SubjectTemplateStore(settings.subjects_file)
    app.state.message_store = MessageTemplateStore(settings.messages_file)
    app.state.transport = transport or build_transport(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(send.router, tags=["send"])
    app.include_router(files.router, prefix="/files", tags=["files"])
    app.include_router(templates.router, prefix="/templates", tags=["templates"])

    @app.on_event("startup")
    async def log_startup() -> None:
        logger.info(
            "QuickSend API running at http://localhost:%s (transport: %s, data: %s)",
            settings.port,
            app.state.transport.name,
            settings.data_dir,
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` on the configured port."""
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
