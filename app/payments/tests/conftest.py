"""
Pytest fixtures for payment tests.

Fixtures provide connected accounts and webhook events in the states the
webhook pipeline and repair tasks care about.

Usage:
    def test_retry_picks_up_failed(failed_webhook):
        retry_failed_webhooks()
"""

import pytest

from authentication.tests.factories import UserFactory
from payments.state_machines import OnboardingStatus
from payments.tests.factories import ConnectedAccountFactory, WebhookEventFactory


# =============================================================================
# User and Profile Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a test user (profile is created by signal)."""
    return UserFactory()


@pytest.fixture
def profile(db, user):
    return user.profile


@pytest.fixture
def another_profile(db):
    return UserFactory().profile


# =============================================================================
# Connected Account Fixtures
# =============================================================================


@pytest.fixture
def connected_account(db, profile):
    """Create a connected account with complete onboarding."""
    return ConnectedAccountFactory(profile=profile)


@pytest.fixture
def incomplete_connected_account(db, profile):
    """Create a connected account with in-progress onboarding."""
    return ConnectedAccountFactory(
        profile=profile,
        onboarding_status=OnboardingStatus.IN_PROGRESS,
        payouts_enabled=False,
        charges_enabled=False,
    )


# =============================================================================
# WebhookEvent Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook(db):
    """Create a pending webhook event."""
    return WebhookEventFactory()


@pytest.fixture
def processed_webhook(db):
    """Create a processed webhook event."""
    webhook = WebhookEventFactory()
    webhook.mark_processing()
    webhook.mark_processed()
    webhook.save()
    return webhook


@pytest.fixture
def failed_webhook(db):
    """Create a failed webhook event."""
    webhook = WebhookEventFactory()
    webhook.mark_processing()
    webhook.mark_failed("Processing error: test failure")
    webhook.save()
    return webhook
