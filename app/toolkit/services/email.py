"""
Email service for centralized email sending.

This module provides the EmailService class for sending emails with:
- Django template rendering for HTML and plain text
- Inline images referenced from HTML as cid:<content_id>

Configuration:
    Email settings are read from Django settings:
    - EMAIL_BACKEND
    - EMAIL_HOST, EMAIL_PORT
    - DEFAULT_FROM_EMAIL

Usage:
    from toolkit.services.email import EmailService, InlineImage

    EmailService.send(
        to="buyer@example.com",
        subject="Your tickets",
        template_name="ticketing/emails/order_confirmation",
        context={"order": order},
        inline_images=[InlineImage("qr-abc", png_bytes)],
    )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from email.mime.image import MIMEImage
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

from toolkit.helpers import mask_email

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineImage:
    """
    An image embedded in an HTML email.

    Attributes:
        content_id: Referenced from HTML as <img src="cid:{content_id}">
        content: Raw image bytes
        subtype: MIME image subtype
    """

    content_id: str
    content: bytes
    subtype: str = "png"

    @property
    def filename(self) -> str:
        return f"{self.content_id}.{self.subtype}"


class EmailService:
    """
    Centralized email sending with template support.

    Templates are looked up as {template_name}.txt (required, plain text
    body) and {template_name}.html (optional alternative).
    """

    @staticmethod
    def send(
        to: str | list[str],
        subject: str,
        template_name: str,
        context: dict[str, Any],
        from_email: str | None = None,
        inline_images: list[InlineImage] | None = None,
    ) -> int:
        """
        Send email using a template.

        Args:
            to: Recipient email address(es)
            subject: Email subject line
            template_name: Name of template (without extension)
                           Looks for: {template_name}.txt and {template_name}.html
            context: Template context variables
            from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)
            inline_images: Images referenced from the HTML body by content id

        Returns:
            Number of messages sent (1)

        Raises:
            TemplateDoesNotExist: The plain text template is missing
            SMTPException / OSError: The backend failed to deliver
        """
        if isinstance(to, str):
            to = [to]

        from_email = from_email or settings.DEFAULT_FROM_EMAIL

        text_content = render_to_string(f"{template_name}.txt", context)
        html_content = EmailService._render_optional(f"{template_name}.html", context)

        email = EmailMultiAlternatives(
            subject=subject,
            body=text_content,
            from_email=from_email,
            to=to,
        )

        if html_content:
            email.attach_alternative(html_content, "text/html")

        if inline_images:
            # multipart/related keeps cid: references resolvable in mail clients
            email.mixed_subtype = "related"
            for image in inline_images:
                part = MIMEImage(image.content, _subtype=image.subtype)
                part.add_header("Content-ID", f"<{image.content_id}>")
                part.add_header("Content-Disposition", "inline", filename=image.filename)
                email.attach(part)

        sent = email.send(fail_silently=False)
        logger.info(
            f"Email sent: {subject}",
            extra={
                "to": [mask_email(address) for address in to],
                "template_name": template_name,
                "inline_images": len(inline_images or []),
            },
        )
        return sent

    @staticmethod
    def _render_optional(template_name: str, context: dict[str, Any]) -> str | None:
        try:
            return render_to_string(template_name, context)
        except TemplateDoesNotExist:
            return None
