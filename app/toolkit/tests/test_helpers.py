"""
Tests for toolkit helpers.
"""

import pytest

from ticketing.models import Event
from ticketing.tests.factories import EventFactory
from toolkit.helpers import mask_email, slugify_unique


class TestMaskEmail:
    @pytest.mark.parametrize(
        "email,expected",
        [
            ("buyer@example.com", "b***@example.com"),
            ("a@example.com", "***@example.com"),
            ("", "***"),
            ("not-an-email", "***"),
        ],
    )
    def test_mask_email(self, email, expected):
        assert mask_email(email) == expected


@pytest.mark.django_db
class TestSlugifyUnique:
    def test_free_slug_used_as_is(self):
        assert slugify_unique("Jazz Night", Event) == "jazz-night"

    def test_taken_slug_gets_suffix(self):
        EventFactory(slug="jazz-night")
        EventFactory(slug="jazz-night-2")

        assert slugify_unique("Jazz Night", Event) == "jazz-night-3"

    def test_unsluggable_value(self):
        assert slugify_unique("!!!", Event) == "item"

    def test_respects_max_length(self):
        slug = slugify_unique("x" * 300, Event, max_length=50)

        assert len(slug) <= 50
