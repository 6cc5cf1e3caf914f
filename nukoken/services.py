"""Image uploads and the contact form."""

import asyncio
from dataclasses import dataclass
from email.message import EmailMessage
import html
import logging
from pathlib import Path
import secrets
import smtplib
import time

from nukoken.config import Config
from nukoken.errors import ValidationError


logger = logging.getLogger(__name__)


NO_FILE = "Geen bestand geüpload"
BAD_TYPE = "Alleen JPG, PNG, WebP en GIF bestanden zijn toegestaan"
TOO_LARGE = "Bestand is te groot (max {mb}MB)"
CONTACT_REQUIRED = "Alle velden zijn verplicht"


IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def upload_filename(content_type: str) -> str:
    """Stored name for an upload. The extension follows the checked MIME type."""
    extension = IMAGE_EXTENSIONS[content_type]
    return f"recipe-{int(time.time() * 1000)}-{secrets.token_hex(3)}.{extension}"


def validate_upload(content_type: str | None, size: int, config: Config) -> None:
    if content_type not in config.allowed_image_types or content_type not in IMAGE_EXTENSIONS:
        raise ValidationError(BAD_TYPE)
    if size > config.max_upload_bytes:
        raise ValidationError(TOO_LARGE.format(mb=config.max_upload_bytes // (1024 * 1024)))


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


async def store_upload(
    filename: str | None,
    content_type: str | None,
    data: bytes,
    *,
    config: Config,
) -> str:
    """Validate and save an image. Returns the URL it is served under."""
    if not data:
        raise ValidationError(NO_FILE)
    validate_upload(content_type, len(data), config)

    name = upload_filename(str(content_type))
    await asyncio.to_thread(_write, config.upload_dir / name, data)
    logger.info("Stored upload %s as %s (%d bytes)", filename, name, len(data))
    return f"{config.upload_url_prefix.rstrip('/')}/{name}"


@dataclass(frozen=True)
class ContactMessage:
    name: str
    email: str
    subject: str
    message: str

    @classmethod
    def create(cls, name: str, email: str, subject: str, message: str) -> "ContactMessage":
        values = [v.strip() for v in (name, email, subject, message)]
        if not all(values):
            raise ValidationError(CONTACT_REQUIRED)
        return cls(*values)

    @property
    def html(self) -> str:
        body = html.escape(self.message).replace("\n", "<br>")
        return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #f97316;">Nieuw bericht via NuKoken</h2>
          <p><strong>Van:</strong> {html.escape(self.name)}</p>
          <p><strong>Email:</strong> {html.escape(self.email)}</p>
          <p><strong>Onderwerp:</strong> {html.escape(self.subject)}</p>
          <h3>Bericht:</h3>
          <div style="border-left: 4px solid #f97316; padding: 15px;">{body}</div>
          <p style="color: #6b7280; font-size: 14px;">
            Dit bericht is verzonden via het contactformulier op NuKoken.nl
          </p>
        </div>
        """


def build_email(contact: ContactMessage, config: Config) -> EmailMessage:
    email = EmailMessage()
    email["From"] = config.smtp_user
    email["To"] = config.contact_recipient or config.smtp_user
    email["Subject"] = f"[NuKoken Contact] {contact.subject}"
    email["Reply-To"] = contact.email
    email.set_content(contact.message)
    email.add_alternative(contact.html, subtype="html")
    return email


def _send(email: EmailMessage, config: Config) -> None:
    with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=20) as smtp:
        smtp.starttls()
        if config.smtp_user:
            smtp.login(config.smtp_user, config.smtp_password)
        smtp.send_message(email)


async def send_contact_email(contact: ContactMessage, *, config: Config) -> None:
    email = build_email(contact, config)
    await asyncio.to_thread(_send, email, config)
    logger.info("Contact email sent for %s", contact.email)
