"""Unit tests for the admin key gate."""

from unittest.mock import patch

import pytest

from app.core.auth import require_admin, validate_admin_key
from app.core.errors import AuthenticationAppError


class TestValidateAdminKey:
    """Test core admin key validation logic."""

    @patch("app.core.auth.settings")
    def test_unset_secret_locks_write_endpoints(self, mock_settings) -> None:
        """An empty ADMIN_API_KEY rejects every caller, even an empty key."""
        mock_settings.app.admin_api_key = None

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key("")

        assert exc_info.value.code == "admin_key_not_configured"
        assert exc_info.value.message == "Forbidden: Admins only"

    @patch("app.core.auth.settings")
    def test_missing_key_is_rejected(self, mock_settings) -> None:
        mock_settings.app.admin_api_key = "s3cret"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key(None)

        assert exc_info.value.code == "missing_api_key"

    @patch("app.core.auth.settings")
    def test_wrong_key_is_rejected(self, mock_settings) -> None:
        mock_settings.app.admin_api_key = "s3cret"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key("s3cret ")

        assert exc_info.value.code == "invalid_api_key"
        assert exc_info.value.message == "Forbidden: Admins only"

    @patch("app.core.auth.settings")
    def test_matching_key_passes(self, mock_settings) -> None:
        mock_settings.app.admin_api_key = "s3cret"

        # Should not raise
        validate_admin_key("s3cret")


class TestRequireAdminDependency:
    """Test the FastAPI dependency wrapper."""

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_accepts_valid_key(self, mock_settings) -> None:
        mock_settings.app.admin_api_key = "s3cret"

        await require_admin(x_api_key="s3cret")

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_raises_app_error_for_bad_key(self, mock_settings) -> None:
        mock_settings.app.admin_api_key = "s3cret"

        with pytest.raises(AuthenticationAppError):
            await require_admin(x_api_key="nope")

    def test_rejection_renders_as_403(self, client) -> None:
        resp = client.post(
            "/api/v1/chapters",
            headers={"X-API-Key": "wrong"},
            files={"file": ("chapters.json", b"[]", "application/json")},
        )

        assert resp.status_code == 403
        body = resp.json()
        assert body["error"]["code"] == "invalid_api_key"
        assert body["error"]["message"] == "Forbidden: Admins only"
