"""Identity-token authentication on the API transport (/api/v1/me)."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from django.db import DatabaseError

pytestmark = pytest.mark.integration

ME = "/api/v1/me"


class TestMe:
    def test_no_token(self, api_client):
        response = api_client.get(ME)

        assert response.status_code == 401
        assert response["WWW-Authenticate"] == 'Bearer realm="api"'

    def test_malformed_header(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token abc")
        assert api_client.get(ME).status_code == 401

    def test_bad_signature(self, api_client, admin_profile, make_token):
        token = make_token(admin_profile.subject_id, secret="not-the-provider-secret-0123456789")
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        assert api_client.get(ME).status_code == 401

    def test_expired(self, api_client, admin_profile, make_token):
        token = make_token(admin_profile.subject_id, expires_in=-60)
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        assert api_client.get(ME).status_code == 401

    def test_unknown_subject(self, api_client, make_token):
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token('ghost')}")

        response = api_client.get(ME)

        assert response.status_code == 401
        assert "ghost" in response.json()["detail"]

    def test_inactive(self, api_client, admin_profile, make_token):
        admin_profile.is_active = False
        admin_profile.save()
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(admin_profile.subject_id)}")

        assert api_client.get(ME).status_code == 401

    def test_profile(self, retailer_client, retailer):
        response = retailer_client.get(ME)

        assert response.status_code == 200
        assert response.json() == {
            "subject_id": "retailer-sub",
            "email": None,
            "role": "retailer",
            "retailer_id": str(retailer.id),
            "is_active": True,
        }

    def test_email_comes_from_token(self, api_client, admin_profile, make_token):
        token = make_token(admin_profile.subject_id, email="admin@backoffice.test")
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        assert api_client.get(ME).json()["email"] == "admin@backoffice.test"

    def test_profile_store_outage_is_503(self, api_client, admin_profile, make_token):
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(admin_profile.subject_id)}")
        with patch(
            "modules.accounts.repositories.django_repository.UserProfile.objects.filter",
            side_effect=DatabaseError("connection refused"),
        ):
            response = api_client.get(ME)

        assert response.status_code == 503
