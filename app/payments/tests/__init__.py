"""
Tests for payments app.

This package contains test modules for:
- test_adapters.py: StripeAdapter parameters, error translation, signatures
- test_models.py: ConnectedAccount and WebhookEvent model tests
- test_webhooks.py: Webhook endpoint, handler registry and account.updated
- test_tasks.py: Webhook retry and stuck-event repair tasks

Usage:
    pytest app/payments/tests/
    pytest app/payments/tests/test_webhooks.py
"""
