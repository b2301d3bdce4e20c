"""Unit tests for dependencies.py."""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from staffing_api.booking.enums import ActorRole
from staffing_api.dependencies import get_actor
from staffing_api.dependencies import get_booking_machine
from staffing_api.dependencies import get_booking_store
from staffing_api.dependencies import get_project_service
from staffing_api.dependencies import get_settings


class TestStateAccessors:
    """Tests for the app.state accessors."""

    def test_get_settings(self):
        mock_request = MagicMock()
        mock_request.app.state.settings = "settings"

        assert get_settings(mock_request) == "settings"

    def test_booking_components(self):
        mock_request = MagicMock()
        mock_request.app.state.booking_store = "store"
        mock_request.app.state.booking_machine = "machine"
        mock_request.app.state.project_service = "service"

        assert get_booking_store(mock_request) == "store"
        assert get_booking_machine(mock_request) == "machine"
        assert get_project_service(mock_request) == "service"


class TestGetActor:
    """Tests for get_actor."""

    @pytest.mark.asyncio
    async def test_default_role_is_client(self):
        actor = await get_actor(x_actor_id="client-1", x_actor_role=None)

        assert actor.actor_id == "client-1"
        assert actor.role == ActorRole.CLIENT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "header,role",
        [("candidate", ActorRole.CANDIDATE), ("Admin", ActorRole.ADMIN), (" client ", ActorRole.CLIENT)],
    )
    async def test_known_roles(self, header, role):
        actor = await get_actor(x_actor_id="u1", x_actor_role=header)

        assert actor.role == role

    @pytest.mark.asyncio
    @pytest.mark.parametrize("x_actor_id", [None, ""])
    async def test_missing_identity(self, x_actor_id):
        with pytest.raises(HTTPException) as exc_info:
            await get_actor(x_actor_id=x_actor_id, x_actor_role="client")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["system", "superuser"])
    async def test_rejected_roles(self, header):
        """The system role is reserved for scheduled jobs and never accepted from a request."""
        with pytest.raises(HTTPException) as exc_info:
            await get_actor(x_actor_id="u1", x_actor_role=header)

        assert exc_info.value.status_code == 400
