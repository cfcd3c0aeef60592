# teamup/storage_context.py
import logging
from typing import Optional

from teamup.config import StorageSettings
from teamup.local_storage import LocalStorageAdapter
from teamup.remote_storage import RemoteStorageAdapter
from teamup.storage_adapter import SaveResult, StorageAdapter
from teamup.wizard_state import SavedTeam, WizardState

logger = logging.getLogger("teamup_storage")


def create_adapter(settings: StorageSettings) -> StorageAdapter:
    if settings.use_remote:
        logger.info("Using remote storage adapter")
        return RemoteStorageAdapter.from_url(settings.storage_url, settings.storage_key)
    logger.info("Using local storage adapter (remote credentials not found) at %s", settings.data_dir)
    return LocalStorageAdapter(settings.data_dir)


class StorageContext:
    """
    Explicit handle on the storage backend, passed to whoever owns a wizard
    session. The backend is picked once, when the context is created.
    """

    def __init__(self, adapter: StorageAdapter, settings: Optional[StorageSettings] = None):
        self._adapter = adapter
        self.settings = settings or StorageSettings()

    @classmethod
    def from_settings(cls, settings: Optional[StorageSettings] = None) -> "StorageContext":
        settings = settings or StorageSettings.from_env()
        return cls(create_adapter(settings), settings)

    @property
    def adapter(self) -> StorageAdapter:
        return self._adapter

    def set_adapter_for_testing(self, adapter: StorageAdapter) -> None:
        """Test harness hook: force a specific backend."""
        self._adapter = adapter

    async def list_teams(self) -> list[SavedTeam]:
        return await self._adapter.list_teams()

    async def save_team(self, state: WizardState) -> SaveResult:
        return await self._adapter.save_team(state)

    async def load_team(self, team_id: str) -> Optional[WizardState]:
        return await self._adapter.load_team(team_id)

    async def delete_team(self, team_id: str) -> None:
        await self._adapter.delete_team(team_id)

    async def initialize_example_team(self) -> None:
        await self._adapter.initialize_example_team()
