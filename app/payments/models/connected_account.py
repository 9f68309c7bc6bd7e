"""
ConnectedAccount model for Stripe Connect integration.

An event organizer's Stripe Connected Account is the destination of every
ticket sale: the platform fee stays with the platform and the remainder is
transferred to this account by Stripe.

Usage:
    from payments.models import ConnectedAccount

    account = ConnectedAccount.for_user(event.organizer)
    if account is None or not account.is_ready_for_payouts:
        raise OrganizerPayoutNotConfiguredError(...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import OnboardingStatus

if TYPE_CHECKING:
    from authentication.models import User


class ConnectedAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    Represents an organizer's Stripe Connected Account.

    Fields:
        profile: OneToOne link to the organizer's Profile
        stripe_account_id: Unique Stripe Account ID (acct_xxx)
        onboarding_status: Current state of Stripe Connect onboarding
        payouts_enabled: Whether Stripe has enabled payouts
        charges_enabled: Whether Stripe has enabled charges
        metadata: Flexible JSON storage for additional data

    Note:
        Status fields are kept in sync by the account.updated webhook
        handler. Checkout reads them fresh on every request.
    """

    profile = models.OneToOneField(
        "authentication.Profile",
        on_delete=models.PROTECT,
        related_name="connected_account",
        help_text="Profile this connected account belongs to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.NOT_STARTED,
        db_index=True,
        help_text="Current Stripe Connect onboarding status",
    )

    payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled payouts for this account",
    )

    charges_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled charges for this account",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata (e.g., business type, country)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        return f"ConnectedAccount({self.stripe_account_id}, {self.onboarding_status})"

    @classmethod
    def for_user(cls, user: User) -> ConnectedAccount | None:
        """Return the connected account owned by user, or None."""
        return cls.objects.filter(profile__user=user).first()

    @property
    def is_ready_for_payouts(self) -> bool:
        """
        Check if account can receive transfers from ticket sales.

        Returns:
            True when onboarding is complete and Stripe enabled payouts
        """
        return (
            self.onboarding_status == OnboardingStatus.COMPLETE and self.payouts_enabled
        )
