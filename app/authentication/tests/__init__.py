"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User, UserManager and Profile tests

Usage:
    pytest app/authentication/tests/
"""
