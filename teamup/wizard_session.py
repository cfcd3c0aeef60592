# teamup/wizard_session.py
import logging
from typing import Any, Optional

from teamup.changes import LoadState, apply_change
from teamup.errors import ValidationIssue
from teamup.history import History
from teamup.storage_adapter import SaveResult
from teamup.storage_context import StorageContext
from teamup.validation import CompletenessResult, validate_completeness, validate_references, validate_structure
from teamup.wizard_state import DEFAULT_ACTOR, EMPTY_STATE, WizardState

logger = logging.getLogger("teamup_session")


class WizardSession:
    """
    Owner of one running wizard: the live snapshot (through its history) and
    the storage context used to persist it.

    Persistence never rolls back editing state: a failed save leaves the
    present snapshot and the undo/redo stacks exactly as they were.
    """

    def __init__(
        self,
        storage: StorageContext,
        initial: WizardState = EMPTY_STATE,
        history_limit: Optional[int] = None,
        actor: str = DEFAULT_ACTOR,
    ):
        self.storage = storage
        self.actor = actor
        if history_limit is None:
            history_limit = storage.settings.history_limit
        self.history: History[WizardState] = History(initial, max_past=history_limit)

    @property
    def state(self) -> WizardState:
        return self.history.present

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def dispatch(self, change: Any) -> WizardState:
        self.history.set(apply_change(self.state, change, actor=self.actor))
        return self.state

    def undo(self) -> Optional[WizardState]:
        return self.history.undo()

    def redo(self) -> Optional[WizardState]:
        return self.history.redo()

    def reset(self, state: WizardState = EMPTY_STATE) -> None:
        self.history.reset(state)

    def issues(self) -> list[ValidationIssue]:
        return validate_structure(self.state) + validate_references(self.state)

    def completeness(self) -> CompletenessResult:
        return validate_completeness(self.state)

    async def save(self) -> SaveResult:
        snapshot = self.state
        result = await self.storage.save_team(snapshot)
        if not result.success:
            logger.info("Save failed: %s", result.error)
            return result

        if not (snapshot.team and snapshot.team.id):
            self._adopt_team_id(result.saved_team.id)
        return result

    def _adopt_team_id(self, team_id: str) -> None:
        # every id-less snapshot in the history takes the assigned id
        def _with_id(state: WizardState) -> WizardState:
            if state.team is None or state.team.id:
                return state
            return state.model_copy(update={"team": state.team.model_copy(update={"id": team_id})})

        self.history.rewrite(_with_id)
        logger.info("Adopted assigned team id %s", team_id)

    async def load(self, team_id: str) -> bool:
        loaded = await self.storage.load_team(team_id)
        if loaded is None:
            logger.info("Team %s not found", team_id)
            return False
        # undo history must not leak across teams
        self.history.reset(apply_change(loaded, LoadState(loaded), actor=self.actor))
        return True

    async def delete(self, team_id: str) -> None:
        await self.storage.delete_team(team_id)
