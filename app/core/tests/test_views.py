"""
Tests for the health check endpoint.
"""

from unittest.mock import patch

import pytest
from django.db.utils import OperationalError
from django.test import override_settings
from django.urls import reverse


@pytest.mark.django_db
class TestHealthCheck:
    def test_healthy(self, client):
        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
            "stripe": "configured",
        }

    @override_settings(STRIPE_WEBHOOK_SECRET="")
    def test_missing_stripe_config_reported_but_healthy(self, client):
        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json()["stripe"] == "missing"

    def test_database_down(self, client):
        with patch("core.views.connection.cursor", side_effect=OperationalError("down")):
            response = client.get(reverse("health_check"))

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
