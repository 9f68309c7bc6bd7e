"""
Tests for User, Profile and UserManager.
"""

import pytest

from authentication.models import Profile, User
from authentication.tests.factories import ProfileFactory, UserFactory


@pytest.mark.django_db
class TestUserManager:
    """Tests for email-based user creation."""

    def test_create_user_normalizes_email(self):
        user = User.objects.create_user(email="Buyer@EXAMPLE.com", password="x")

        assert user.email == "Buyer@example.com"
        assert user.check_password("x")
        assert not user.is_staff

    def test_create_user_without_password_is_unusable(self):
        user = User.objects.create_user(email="guest@example.com")

        assert not user.has_usable_password()

    def test_create_user_requires_email(self):
        with pytest.raises(ValueError, match="Email field must be set"):
            User.objects.create_user(email="")

    def test_create_superuser_sets_flags(self, superuser):
        assert superuser.is_staff
        assert superuser.is_superuser

    def test_create_superuser_rejects_non_staff(self):
        with pytest.raises(ValueError, match="is_staff=True"):
            User.objects.create_superuser(
                email="x@example.com", password="x", is_staff=False
            )


@pytest.mark.django_db
class TestProfile:
    """Tests for Profile auto-creation and names."""

    def test_profile_created_with_user(self, user):
        assert Profile.objects.filter(user=user).exists()

    def test_full_name_falls_back_to_email(self, user):
        assert user.get_full_name() == user.email
        assert user.get_short_name() == user.email.split("@")[0]

    def test_full_name_from_profile(self):
        profile = ProfileFactory(
            user=UserFactory(), first_name="Ada", last_name="Lovelace"
        )

        assert profile.full_name == "Ada Lovelace"
        assert profile.user.get_full_name() == "Ada Lovelace"
        assert profile.user.get_short_name() == "Ada"
