"""
Toolkit - Domain-Specific Utilities & Services.

This app provides domain-aware utilities and services:
- EmailService: Templated email sending with inline images
- Helper functions: Unique slug generation, PII masking for logs

Key components:
    - services/email.py: EmailService class
    - helpers.py: Domain-aware utility functions (mask_email, slugify_unique)

Usage:
    from toolkit.services.email import EmailService
    from toolkit.helpers import mask_email, slugify_unique

Note:
    - This app has no models. It's focused on domain-specific utilities.
    - For generic infrastructure (tokens, base models, services), see core/
"""
