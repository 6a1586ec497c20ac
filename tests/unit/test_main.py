"""Tests for the FastAPI application factory module."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from profile_importer.core.config import Settings
from profile_importer.main import create_app


def _settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:")


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self):
        with patch("profile_importer.main.get_settings", return_value=_settings()):
            return create_app()

    def test_app_is_created(self, app) -> None:
        """create_app returns an app with the project title."""
        assert app is not None
        assert app.title == "Profile Importer"

    def test_routes_mounted_under_api_prefix(self, app) -> None:
        """Import routes are mounted under the API prefix."""
        paths = {route.path for route in app.routes}
        assert "/api/v1/imports/profiles" in paths
        assert "/api/v1/imports/profiles/template" in paths
        assert "/api/v1/imports/{job_id}/reports/{kind}" in paths

    def test_app_has_openapi_schema(self, app) -> None:
        """The OpenAPI schema is served."""
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/openapi.json")
        assert response.status_code == 200
        assert response.json()["info"]["title"] == "Profile Importer"

    def test_value_error_handler_registered(self, app) -> None:
        """A ValueError handler is registered."""
        assert app.exception_handlers.get(ValueError) is not None

    @pytest.mark.asyncio
    async def test_value_error_handler_returns_400(self, app) -> None:
        """The ValueError handler maps the message to a 400 response."""
        handler = app.exception_handlers[ValueError]
        response = await handler(None, ValueError("Missing required headers: phone"))
        assert response.status_code == 400
        assert b"Missing required headers" in response.body


class TestAppLifespan:
    """Tests for lifespan management."""

    @pytest.mark.asyncio
    async def test_lifespan_init_and_dispose(self) -> None:
        """Lifespan initializes the engine, then drains background tasks before disposing it."""
        from profile_importer.main import lifespan

        mock_app = AsyncMock()

        with (
            patch("profile_importer.main.get_settings", return_value=_settings()),
            patch("profile_importer.main.setup_logging") as mock_setup_logging,
            patch("profile_importer.main.init_engine") as mock_init_engine,
            patch("profile_importer.main.dispose_engine", new_callable=AsyncMock) as mock_dispose,
            patch("profile_importer.main.task_runner", wait_all=AsyncMock()) as mock_runner,
        ):
            async with lifespan(mock_app):
                mock_setup_logging.assert_called_once()
                mock_init_engine.assert_called_once_with("sqlite+aiosqlite:///:memory:", echo=False)

            mock_runner.wait_all.assert_awaited_once()
            mock_dispose.assert_awaited_once()
