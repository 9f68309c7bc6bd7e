"""
Helper functions for domain-specific operations.

This module provides domain-aware utility functions for:
- Slug generation (with model uniqueness checking)
- Email masking for logs (buyer emails are PII)

Usage:
    from toolkit.helpers import mask_email, slugify_unique

    masked = mask_email("buyer@example.com")  # b***@example.com
    slug = slugify_unique("Jazz Night", Event)  # "jazz-night" or "jazz-night-2"

Note:
    - For generic infrastructure helpers (token generation), see core.helpers
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.utils.text import slugify

if TYPE_CHECKING:
    from django.db.models import Model


def slugify_unique(
    value: str,
    model_class: type[Model],
    field_name: str = "slug",
    max_length: int = 255,
) -> str:
    """
    Generate a slug that no existing row of model_class uses.

    If the base slug already exists, appends a number suffix. The base is
    truncated so the suffixed slug still fits max_length.

    Args:
        value: String to slugify
        model_class: Django model class to check uniqueness against
        field_name: Name of the slug field on the model
        max_length: Maximum length of the slug field

    Returns:
        Unique slug string

    Example:
        slug = slugify_unique("Jazz Night", Event)  # "jazz-night" or "jazz-night-2"
    """
    base_slug = slugify(value)[: max_length - 8] or "item"
    slug = base_slug
    counter = 2

    while model_class.objects.filter(**{field_name: slug}).exists():
        slug = f"{base_slug}-{counter}"
        counter += 1

    return slug


def mask_email(email: str) -> str:
    """
    Mask email for logging.

    Keeps first character and domain visible.

    Returns:
        Masked email (e.g., "j***@example.com"), or "***" if not an email
    """
    if not email or "@" not in email:
        return "***"

    local, domain = email.rsplit("@", 1)
    masked_local = local[0] + "***" if len(local) > 1 else "***"
    return f"{masked_local}@{domain}"
