"""
Bastion - Test Fixtures
=======================

Shared fixtures for all tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up test environment before importing bastion modules
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="bastion-tests-"))
os.environ.setdefault("DISCORD_TOKEN", "test-token")
os.environ["LOG_DIR"] = str(_TEST_ROOT / "logs")
os.environ["DATA_DIR"] = str(_TEST_ROOT / "data")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["HEALTH_CHECK_PORT"] = "0"

from bastion.core.errors import SanctionApplicationFailure  # noqa: E402
from bastion.core.storage import DatabaseStorage, MemoryStorage  # noqa: E402


GUILD_ID = "987654321"
OTHER_GUILD_ID = "123123123"
USER_ID = "123456789"
MOD_ID = "111222333"
BOT_ID = "999888777"


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def memory_storage():
    """Fresh in-memory storage without persistence."""
    return MemoryStorage()


@pytest.fixture
def db_storage(tmp_path):
    """Fresh SQLite storage in a temporary file."""
    storage = DatabaseStorage(tmp_path / "test_bastion.db")
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Each storage backend in turn."""
    if request.param == "memory":
        yield MemoryStorage(tmp_path)
    else:
        backend = DatabaseStorage(tmp_path / "test_bastion.db")
        yield backend
        backend.close()


@pytest.fixture
def configured_storage(storage):
    """Storage with a spam-protected guild already set up."""
    storage.create_server_config(GUILD_ID, "Test Server")
    return storage


# =============================================================================
# Sanction Applier Fake
# =============================================================================

class FakeApplier:
    """Records every sanction call. Steps listed in `failing` raise."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.timeouts = []
        self.kicks = []
        self.purges = []
        self.announcements = []

    def _check(self, action):
        if action in self.failing:
            raise SanctionApplicationFailure(action, "Missing Permissions")

    async def apply_timeout(self, guild_id, user_id, minutes, reason):
        self._check("timeout")
        self.timeouts.append((guild_id, user_id, minutes, reason))

    async def kick(self, guild_id, user_id, reason):
        self._check("kick")
        self.kicks.append((guild_id, user_id, reason))

    async def delete_recent_messages(self, guild_id, user_id, count):
        self._check("purge")
        self.purges.append(count)
        return count

    async def announce(self, text):
        self._check("announce")
        self.announcements.append(text)


@pytest.fixture
def fake_applier():
    return FakeApplier()


# =============================================================================
# Mock Discord Objects
# =============================================================================

def _permissions(administrator=False, kick=False, ban=False, manage_messages=False):
    permissions = MagicMock()
    permissions.administrator = administrator
    permissions.kick_members = kick
    permissions.ban_members = ban
    permissions.manage_messages = manage_messages
    return permissions


@pytest.fixture
def make_permissions():
    return _permissions


@pytest.fixture
def mock_bot():
    """Bot stub with a user and shared service slots."""
    bot = MagicMock()
    bot.user = MagicMock()
    bot.user.id = int(BOT_ID)
    bot.latency = 0.05
    return bot


@pytest.fixture
def mock_guild():
    guild = MagicMock()
    guild.id = int(GUILD_ID)
    guild.name = "Test Server"
    guild.owner_id = 1
    guild.member_count = 42
    guild.me = MagicMock()
    guild.me.id = int(BOT_ID)
    guild.get_member = MagicMock(return_value=None)
    guild.get_role = MagicMock(return_value=None)
    guild.get_channel = MagicMock(return_value=None)
    guild.ban = AsyncMock()
    guild.create_text_channel = AsyncMock()
    return guild


@pytest.fixture
def mock_member(mock_guild):
    """A regular member with no moderation permissions."""
    member = MagicMock()
    member.id = int(USER_ID)
    member.name = "testuser"
    member.mention = f"<@{USER_ID}>"
    member.bot = False
    member.guild = mock_guild
    member.roles = []
    member.guild_permissions = _permissions()
    member.top_role = 1
    member.display_avatar.url = "https://example.com/avatar.png"
    member.kick = AsyncMock()
    member.timeout = AsyncMock()
    member.send = AsyncMock()
    member.add_roles = AsyncMock()
    return member


@pytest.fixture
def mock_moderator(mock_guild):
    """A member holding Kick Members."""
    mod = MagicMock()
    mod.id = int(MOD_ID)
    mod.name = "moduser"
    mod.mention = f"<@{MOD_ID}>"
    mod.bot = False
    mod.guild = mock_guild
    mod.roles = []
    mod.guild_permissions = _permissions(kick=True)
    mod.top_role = 5
    return mod


@pytest.fixture
def mock_channel(mock_guild):
    channel = MagicMock()
    channel.id = 555666777
    channel.name = "general"
    channel.guild = mock_guild
    channel.mention = "<#555666777>"
    channel.send = AsyncMock()
    channel.edit = AsyncMock()
    channel.delete = AsyncMock()
    channel.delete_messages = AsyncMock()
    channel.purge = AsyncMock(return_value=[])
    return channel


@pytest.fixture
def mock_message(mock_member, mock_guild, mock_channel):
    from datetime import datetime, timezone

    message = MagicMock()
    message.id = 444555666
    message.content = "hello"
    message.author = mock_member
    message.guild = mock_guild
    message.channel = mock_channel
    message.mentions = []
    message.created_at = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    message.reply = AsyncMock()
    message.delete = AsyncMock()
    return message


@pytest.fixture
def mock_interaction(mock_moderator, mock_guild, mock_channel):
    interaction = MagicMock()
    interaction.user = mock_moderator
    interaction.guild = mock_guild
    interaction.guild_id = mock_guild.id
    interaction.channel = mock_channel
    interaction.channel_id = mock_channel.id
    interaction.response = MagicMock()
    interaction.response.defer = AsyncMock()
    interaction.response.send_message = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction
