"""
Tests for ticketing app.

This package contains test modules for:
- test_pricing.py, test_metadata.py, test_inventory.py: Checkout building blocks
- test_models.py: Event, TicketTier, Order and Ticket tests
- test_services.py: Checkout, fulfillment, enrichment and lookup services
- test_webhooks.py: checkout.session.* handlers through the webhook endpoint
- test_views.py: Checkout and order lookup API
- test_tasks.py, test_commands.py: Confirmation email task, reconcile command
- test_integration.py: Full purchase flow
- test_concurrency.py: Parallel fulfillment (PostgreSQL only)

Usage:
    pytest app/ticketing/tests/
    pytest app/ticketing/tests/test_services.py
"""
