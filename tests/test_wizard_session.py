"""Tests for the wizard session: edits, history and persistence together."""

import asyncio
import tempfile
import unittest
from unittest.mock import patch

from teamup.changes import AddEntity, NextStep, SetTeam, UpdateTeam
from teamup.config import StorageSettings
from teamup.errors import StorageWriteError
from teamup.local_storage import LocalStorageAdapter
from teamup.storage_context import StorageContext
from teamup.wizard_session import WizardSession
from teamup.wizard_state import EMPTY_STATE, Team, Value

from factories import make_complete_state


class TestWizardSession(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        settings = StorageSettings(data_dir=self._tmp.name)
        self.context = StorageContext(LocalStorageAdapter(self._tmp.name), settings)
        self.session = WizardSession(self.context)

    def tearDown(self):
        self._tmp.cleanup()

    def test_starts_empty_without_history(self):
        self.assertIs(self.session.state, EMPTY_STATE)
        self.assertFalse(self.session.can_undo)
        self.assertFalse(self.session.can_redo)

    def test_dispatch_undo_redo(self):
        self.session.dispatch(SetTeam(Team(name="Rockets")))
        self.session.dispatch(NextStep())
        self.assertEqual(self.session.state.current_step, 1)

        self.session.undo()
        self.assertEqual(self.session.state.current_step, 0)
        self.assertEqual(self.session.state.team.name, "Rockets")
        self.session.undo()
        self.assertIs(self.session.state, EMPTY_STATE)

        self.session.redo()
        self.assertEqual(self.session.state.team.name, "Rockets")
        self.assertTrue(self.session.can_redo)

    def test_actor_recorded_in_audit_log(self):
        session = WizardSession(self.context, actor="alice")
        session.dispatch(SetTeam(Team(name="Rockets")))
        self.assertEqual(session.state.audit_log[-1].actor, "alice")

    def test_history_limit_from_settings(self):
        settings = StorageSettings(data_dir=self._tmp.name, history_limit=2)
        session = WizardSession(StorageContext(self.context.adapter, settings))
        for n in range(4):
            session.dispatch(AddEntity("values", Value(label=f"Value {n}")))
        self.assertEqual(len(session.history.past), 2)

    def test_failed_save_keeps_editing_state(self):
        self.session.dispatch(UpdateTeam({"name": "Ab"}))
        present = self.session.state
        past = list(self.session.history.past)

        result = asyncio.run(self.session.save())

        self.assertFalse(result.success)
        self.assertIs(self.session.state, present)
        self.assertEqual(self.session.history.past, past)

    def test_write_failure_keeps_editing_state(self):
        session = WizardSession(self.context, initial=make_complete_state())
        session.dispatch(NextStep())
        present = session.state
        with patch.object(LocalStorageAdapter, "_upsert", side_effect=StorageWriteError("disk full")):
            result = asyncio.run(session.save())
        self.assertFalse(result.success)
        self.assertIs(session.state, present)
        self.assertTrue(session.can_undo)

    def test_save_adopts_assigned_identifier(self):
        session = WizardSession(self.context, initial=make_complete_state(team_id=""))
        result = asyncio.run(session.save())
        self.assertTrue(result.success)
        self.assertEqual(session.state.team.id, result.saved_team.id)
        self.assertFalse(session.can_undo)

    def test_undo_after_assigned_id_keeps_single_saved_team(self):
        session = WizardSession(self.context, initial=make_complete_state(team_id=""))
        session.dispatch(NextStep())
        first = asyncio.run(session.save())
        self.assertTrue(first.success)

        session.undo()
        self.assertEqual(session.state.current_step, 0)
        self.assertEqual(session.state.team.id, first.saved_team.id)
        session.redo()
        self.assertEqual(session.state.team.id, first.saved_team.id)

        session.undo()
        second = asyncio.run(session.save())
        self.assertEqual(second.saved_team.id, first.saved_team.id)
        teams = asyncio.run(self.context.list_teams())
        self.assertEqual([t.id for t in teams], [first.saved_team.id])

    def test_save_keeps_state_when_id_present(self):
        state = make_complete_state()
        session = WizardSession(self.context, initial=state)
        self.assertTrue(asyncio.run(session.save()).success)
        self.assertIs(session.state, state)
        self.assertFalse(session.can_undo)

    def test_load_resets_history(self):
        saved = make_complete_state()
        asyncio.run(self.context.save_team(saved))
        self.session.dispatch(SetTeam(Team(name="Scratch")))

        self.assertTrue(asyncio.run(self.session.load(saved.team.id)))
        self.assertEqual(self.session.state.team, saved.team)
        self.assertFalse(self.session.can_undo)
        self.assertFalse(self.session.can_redo)
        self.assertEqual(self.session.state.audit_log[-1].details, "Team loaded from storage")

    def test_load_unknown_team_leaves_session_alone(self):
        self.session.dispatch(SetTeam(Team(name="Scratch")))
        present = self.session.state
        self.assertFalse(asyncio.run(self.session.load("missing")))
        self.assertIs(self.session.state, present)
        self.assertTrue(self.session.can_undo)

    def test_delete(self):
        saved = make_complete_state()
        asyncio.run(self.context.save_team(saved))
        asyncio.run(self.session.delete(saved.team.id))
        self.assertIsNone(asyncio.run(self.context.load_team(saved.team.id)))

    def test_live_checks(self):
        self.session.dispatch(UpdateTeam({"name": "Ab"}))
        self.assertEqual([i.path for i in self.session.issues()], ["Team.name"])
        self.assertFalse(self.session.completeness().is_complete)


if __name__ == "__main__":
    unittest.main()
