# teamup/storage_adapter.py
"""
Storage adapter contract shared by every backend.

The five public coroutines (list_teams, save_team, load_team, delete_team,
initialize_example_team) are implemented ONCE here so that swapping the
backend never changes observable behaviour. A backend only provides blocking
primitives; they run in a worker thread via asyncio.to_thread.

Primitive error contract:
  - read primitives raise StorageReadError
  - write primitives raise StorageWriteError
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from teamup.errors import IncompleteStateError, StorageReadError, StorageWriteError, ValidationError
from teamup.example_team import EXAMPLE_TEAM_ID, build_example_saved_team
from teamup.validation import check_persistable
from teamup.wizard_state import SavedTeam, WizardState, new_id, utc_now

logger = logging.getLogger("teamup_storage")

INIT_FLAG_KEY = "teamup-initialized"


class BootstrapState(str, Enum):
    NOT_STARTED = "not_started"
    INITIALIZING = "initializing"
    DONE = "done"


class SaveResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    saved_team: Optional[SavedTeam] = None
    error: Optional[str] = None
    missing: list[str] = []
    issues: list[str] = []


class StorageAdapter(ABC):
    name = "abstract"

    def __init__(self) -> None:
        # in-memory re-entrancy guard, scoped to this adapter instance
        self.bootstrap_state = BootstrapState.NOT_STARTED

    # -----------------------
    # Backend primitives (blocking)
    # -----------------------

    @abstractmethod
    def _fetch_all(self) -> list[SavedTeam]:
        ...

    @abstractmethod
    def _fetch_one(self, team_id: str) -> Optional[SavedTeam]:
        ...

    @abstractmethod
    def _upsert(self, saved: SavedTeam) -> None:
        ...

    @abstractmethod
    def _remove(self, team_id: str) -> None:
        ...

    @abstractmethod
    def _read_flag(self, key: str) -> bool:
        ...

    @abstractmethod
    def _write_flag(self, key: str, value: bool) -> None:
        ...

    # -----------------------
    # Public operations
    # -----------------------

    async def list_teams(self) -> list[SavedTeam]:
        try:
            teams = await asyncio.to_thread(self._fetch_all)
        except StorageReadError as e:
            logger.warning("[%s] list_teams: read failed, returning no data: %s", self.name, e)
            return []
        return sorted(teams, key=lambda t: t.updated_at, reverse=True)

    async def save_team(self, state: WizardState) -> SaveResult:
        try:
            graph = check_persistable(state)
        except ValidationError as e:
            logger.info("[%s] save_team rejected (invalid): %s", self.name, e)
            return SaveResult(
                success=False,
                error=f"Team is invalid: {e}",
                issues=[str(i) for i in e.issues],
            )
        except IncompleteStateError as e:
            logger.info("[%s] save_team rejected (incomplete): %s", self.name, e)
            return SaveResult(
                success=False,
                error=f"Team is incomplete. Missing: {', '.join(e.missing)}",
                missing=e.missing,
            )

        snapshot = graph.state
        team = snapshot.team
        if not team.id:
            team = team.model_copy(update={"id": new_id()})
            snapshot = snapshot.model_copy(update={"team": team})

        saved = SavedTeam(id=team.id, name=team.name, updated_at=utc_now(), state=snapshot)
        try:
            await asyncio.to_thread(self._upsert, saved)
        except StorageWriteError as e:
            logger.error("[%s] save_team failed for %s: %s", self.name, saved.id, e)
            return SaveResult(success=False, error=str(e))

        logger.info("[%s] saved team %s (%s)", self.name, saved.id, saved.name)
        return SaveResult(success=True, saved_team=saved)

    async def load_team(self, team_id: str) -> Optional[WizardState]:
        try:
            saved = await asyncio.to_thread(self._fetch_one, team_id)
        except StorageReadError as e:
            logger.warning("[%s] load_team(%s): read failed: %s", self.name, team_id, e)
            return None
        return saved.state if saved is not None else None

    async def delete_team(self, team_id: str) -> None:
        await asyncio.to_thread(self._remove, team_id)
        logger.info("[%s] deleted team %s (if present)", self.name, team_id)

    async def initialize_example_team(self) -> None:
        if self.bootstrap_state is not BootstrapState.NOT_STARTED:
            return

        # set before the first await so concurrent callers see it
        self.bootstrap_state = BootstrapState.INITIALIZING
        try:
            if await asyncio.to_thread(self._read_flag, INIT_FLAG_KEY):
                self.bootstrap_state = BootstrapState.DONE
                logger.debug("[%s] bootstrap marker present, nothing to seed", self.name)
                return

            existing = await asyncio.to_thread(self._fetch_all)
            example_present = any(t.id == EXAMPLE_TEAM_ID for t in existing)
            if not existing and not example_present:
                await asyncio.to_thread(self._upsert, build_example_saved_team())
                logger.info("[%s] seeded demonstration team %s", self.name, EXAMPLE_TEAM_ID)
            else:
                logger.info("[%s] storage already holds %d team(s), skipping seed", self.name, len(existing))

            await asyncio.to_thread(self._write_flag, INIT_FLAG_KEY, True)
            self.bootstrap_state = BootstrapState.DONE
        except (StorageReadError, StorageWriteError):
            self.bootstrap_state = BootstrapState.NOT_STARTED
            raise
