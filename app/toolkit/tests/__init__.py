"""
Tests for toolkit app.

This package contains test modules for:
- test_helpers.py: Email masking and unique slug tests
- test_email.py: EmailService tests

Usage:
    pytest app/toolkit/tests/
"""
