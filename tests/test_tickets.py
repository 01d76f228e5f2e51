"""
Bastion - Ticket Service Tests
==============================

Ticket channel naming, opening and closing.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from bastion.core.storage.models import ModerationAction, ServerConfigInput, TicketStatus
from bastion.services.tickets import TicketService, ticket_channel_name
from bastion.services.tickets import service as ticket_service_module

from conftest import GUILD_ID, MOD_ID


CATEGORY_ID = "700700700"


@pytest.fixture
def service(mock_bot, memory_storage):
    return TicketService(mock_bot, memory_storage)


@pytest.fixture
def ticket_guild(memory_storage, mock_guild, mock_channel):
    """Guild with a ticket category configured and channel creation mocked."""
    memory_storage.create_server_config(GUILD_ID, "Test Server", ServerConfigInput(
        ticket_category_id=CATEGORY_ID,
        moderator_role_ids=["11"],
    ))
    category = MagicMock(spec=discord.CategoryChannel)
    mock_guild.get_channel.return_value = category
    mock_guild.create_text_channel = AsyncMock(return_value=mock_channel)
    return mock_guild


@pytest.fixture
def no_background_tasks(monkeypatch):
    """Drop the delayed channel delete instead of scheduling it."""
    scheduled = []

    def fake_create_safe_task(coro, name):
        scheduled.append(name)
        coro.close()
        return MagicMock()

    monkeypatch.setattr(ticket_service_module, "create_safe_task", fake_create_safe_task)
    return scheduled


class TestTicketChannelName:
    """Tests for ticket_channel_name()."""

    @pytest.mark.parametrize("username,expected", [
        ("Alice", "ticket-alice"),
        ("John Smith", "ticket-john-smith"),
        ("Ünï Cødé!", "ticket-n-cd"),
        ("!!!", "ticket-user"),
    ])
    def test_names(self, username, expected):
        assert ticket_channel_name(username) == expected

    def test_length_capped(self):
        assert len(ticket_channel_name("a" * 200)) == 100


class TestOpenTicket:
    """Tests for open_ticket()."""

    @pytest.mark.asyncio
    async def test_not_configured(self, service, mock_interaction):
        assert await service.open_ticket(mock_interaction) is None
        message = mock_interaction.response.send_message.call_args.args[0]
        assert "not configured" in message

    @pytest.mark.asyncio
    async def test_missing_category(self, service, memory_storage, mock_interaction):
        memory_storage.create_server_config(GUILD_ID, "Test Server", ServerConfigInput(
            ticket_category_id=CATEGORY_ID,
        ))
        assert await service.open_ticket(mock_interaction) is None
        assert "no longer exists" in mock_interaction.response.send_message.call_args.args[0]

    @pytest.mark.asyncio
    async def test_creates_channel_and_ticket(self, service, ticket_guild, mock_interaction, mock_channel):
        ticket = await service.open_ticket(mock_interaction)

        assert ticket["status"] == TicketStatus.OPEN.value
        assert ticket["channel_id"] == str(mock_channel.id)
        assert ticket["user_id"] == MOD_ID

        create_kwargs = ticket_guild.create_text_channel.call_args.kwargs
        assert ticket_guild.create_text_channel.call_args.args[0] == "ticket-moduser"
        assert create_kwargs["overwrites"][ticket_guild.default_role].view_channel is False
        mock_channel.send.assert_awaited_once()
        mock_interaction.followup.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_one_open_ticket_per_user(self, service, ticket_guild, mock_interaction, mock_channel):
        service.storage.create_ticket(GUILD_ID, "12345", MOD_ID, "General Support")

        assert await service.open_ticket(mock_interaction) is None
        assert "<#12345>" in mock_interaction.response.send_message.call_args.args[0]
        ticket_guild.create_text_channel.assert_not_called()

    @pytest.mark.asyncio
    async def test_double_click_opens_one_ticket(self, service, ticket_guild, mock_interaction, mock_channel):
        """Test two overlapping presses by the same user create a single ticket."""
        async def slow_create(*args, **kwargs):
            await asyncio.sleep(0)
            return mock_channel

        ticket_guild.create_text_channel = AsyncMock(side_effect=slow_create)

        results = await asyncio.gather(
            service.open_ticket(mock_interaction),
            service.open_ticket(mock_interaction),
        )

        assert sum(1 for r in results if r is not None) == 1
        assert len(service.storage.get_tickets(GUILD_ID, TicketStatus.OPEN.value)) == 1
        ticket_guild.create_text_channel.assert_awaited_once()
        assert "already being created" in mock_interaction.response.send_message.call_args.args[0]

    @pytest.mark.asyncio
    async def test_claim_released_after_failure(self, service, ticket_guild, mock_interaction, mock_channel):
        """Test a failed create does not block the user's next attempt."""
        response = MagicMock()
        response.status = 500
        response.reason = "Server Error"
        ticket_guild.create_text_channel = AsyncMock(
            side_effect=[discord.HTTPException(response, "boom"), mock_channel],
        )

        assert await service.open_ticket(mock_interaction) is None
        assert await service.open_ticket(mock_interaction) is not None

    @pytest.mark.asyncio
    async def test_channel_create_failure(self, service, ticket_guild, mock_interaction):
        response = MagicMock()
        response.status = 403
        response.reason = "Forbidden"
        ticket_guild.create_text_channel = AsyncMock(side_effect=discord.Forbidden(response, "Missing Access"))

        assert await service.open_ticket(mock_interaction) is None
        assert service.storage.get_tickets(GUILD_ID) == []


class TestCloseTicket:
    """Tests for close_ticket()."""

    @pytest.mark.asyncio
    async def test_close_records_case(self, service, mock_interaction, mock_channel, no_background_tasks):
        service.storage.create_ticket(GUILD_ID, str(mock_channel.id), "42", "General Support")

        ticket = await service.close_ticket(mock_interaction)

        assert ticket["status"] == TicketStatus.CLOSED.value
        cases = service.ledger.list(GUILD_ID)
        assert len(cases) == 1
        assert cases[0].action == ModerationAction.TICKET_CLOSE
        assert cases[0].target_user_id == "42"
        assert cases[0].moderator_user_id == MOD_ID
        assert no_background_tasks == ["Ticket Channel Delete"]

    @pytest.mark.asyncio
    async def test_close_non_ticket_channel(self, service, mock_interaction, no_background_tasks):
        assert await service.close_ticket(mock_interaction) is None
        assert service.ledger.list(GUILD_ID) == []
        assert no_background_tasks == []

    @pytest.mark.asyncio
    async def test_close_twice(self, service, mock_interaction, mock_channel, no_background_tasks):
        service.storage.create_ticket(GUILD_ID, str(mock_channel.id), "42", "General Support")
        await service.close_ticket(mock_interaction)

        assert await service.close_ticket(mock_interaction) is None
        assert len(service.ledger.list(GUILD_ID)) == 1

    @pytest.mark.asyncio
    async def test_delete_ignores_missing_channel(self, service, mock_channel):
        response = MagicMock()
        response.status = 404
        response.reason = "Not Found"
        mock_channel.delete = AsyncMock(side_effect=discord.NotFound(response, "Unknown Channel"))
        await service._delete_channel_later(mock_channel, 0)
        mock_channel.delete.assert_awaited_once()
