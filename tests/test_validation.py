"""Tests for the validation gate (teamup/validation.py) and snapshot shape rules."""

import unittest
from unittest.mock import patch

from pydantic import ValidationError as ShapeError

from teamup.errors import IncompleteStateError, ValidationError
from teamup.example_team import build_example_team
from teamup.validation import (
    ResolvedGraph,
    check_persistable,
    resolve_references,
    validate_completeness,
    validate_references,
    validate_structure,
)
from teamup.wizard_state import Goal, Person, Principle, Team, Value, WizardState

from factories import make_complete_state


def _paths(issues):
    return [i.path for i in issues]


class TestStructure(unittest.TestCase):
    """Field-level rules, applicable to in-progress snapshots."""

    def test_complete_state_has_no_issues(self):
        self.assertEqual(validate_structure(make_complete_state()), [])

    def test_empty_state_is_structurally_valid(self):
        self.assertEqual(validate_structure(WizardState()), [])

    def test_short_team_name(self):
        state = WizardState(team=Team(name="Ab"))
        issues = validate_structure(state)
        self.assertEqual(_paths(issues), ["Team.name"])
        self.assertIn("between 3 and 100 characters", issues[0].message)

    def test_long_team_name(self):
        state = WizardState(team=Team(name="x" * 101))
        self.assertIn("Team.name", _paths(validate_structure(state)))

    def test_short_statement_text(self):
        state = make_complete_state()
        state = state.model_copy(update={"vision": state.vision.model_copy(update={"text": "Too short"})})
        self.assertEqual(_paths(validate_structure(state)), ["Vision.text"])

    def test_value_label_bounds(self):
        state = WizardState(values=(Value(label="A"), Value(label="B" * 51)))
        self.assertEqual(_paths(validate_structure(state)), ["values[0].label", "values[1].label"])

    def test_entity_ids_must_be_uuids(self):
        state = WizardState(values=(Value(id="v1", label="Honesty"),))
        self.assertEqual(_paths(validate_structure(state)), ["values[0].id"])

    def test_goal_ids_may_be_tokens(self):
        state = WizardState(goals=(Goal(id="g1", text="Ship it"), Goal(id="not a token!", text="Ship more")))
        self.assertEqual(_paths(validate_structure(state)), ["goals[1].id"])

    def test_duplicate_ids(self):
        value = Value(label="Honesty")
        issues = validate_structure(WizardState(values=(value, value)))
        self.assertEqual(_paths(issues), ["values[1].id"])
        self.assertIn("duplicate", issues[0].message)

    def test_logo_formats(self):
        for logo in ("https://example.com/logo.png", "data:image/png;base64,AAAA"):
            self.assertEqual(validate_structure(WizardState(team=Team(name="Rockets", logo=logo))), [])
        bad = validate_structure(WizardState(team=Team(name="Rockets", logo="ftp://example.com/x.png")))
        self.assertEqual(_paths(bad), ["Team.logo"])

    def test_email_format(self):
        state = make_complete_state()
        person = state.people[0].model_copy(update={"email": "not-an-email"})
        state = state.model_copy(update={"people": (person,)})
        self.assertEqual(_paths(validate_structure(state)), ["people[0].email"])

    def test_step_range(self):
        self.assertEqual(_paths(validate_structure(WizardState(current_step=11))), ["currentStep"])

    def test_team_creator_required(self):
        self.assertEqual(_paths(validate_structure(WizardState(team=Team(created_by=" ")))), ["Team.createdBy"])


class TestReferences(unittest.TestCase):
    """Derivation and role links must resolve within the snapshot."""

    def test_dangling_principle_value(self):
        state = WizardState(
            values=(Value(label="Honesty"),),
            principles=(Principle(label="Tell the truth", derived_from_values=("ghost",)),),
        )
        issues = validate_references(state)
        self.assertEqual(_paths(issues), ["principles[0].derivedFromValues[0]"])
        with self.assertRaises(ValidationError):
            check_persistable(state)

    def test_dangling_behavior_principle(self):
        state = make_complete_state()
        behavior = state.behaviors[0].model_copy(update={"derived_from_principles": ("ghost",)})
        state = state.model_copy(update={"behaviors": (behavior,)})
        self.assertEqual(_paths(validate_references(state)), ["behaviors[0].derivedFromPrinciples[0]"])

    def test_dangling_role(self):
        state = make_complete_state()
        state = state.model_copy(update={"people": (Person(name="Grace Hopper", role_id="ghost"),)})
        self.assertEqual(_paths(validate_references(state)), ["people[0].roleId"])

    def test_dangling_goal_strategy(self):
        state = make_complete_state()
        state = state.model_copy(update={"goals": (Goal(id="g1", text="Ship it", strategy_id="ghost"),)})
        self.assertEqual(_paths(validate_references(state)), ["goals[0].strategyId"])

    def test_resolve_follows_principle_links(self):
        state = make_complete_state()
        graph = resolve_references(state)
        self.assertIsInstance(graph, ResolvedGraph)
        behavior = state.behaviors[0]
        labels = {v.label for v in graph.behavior_values[behavior.id]}
        self.assertEqual(labels, {"Customer Focus", "Craftsmanship"})
        self.assertEqual(graph.person_roles[state.people[0].id].name, "Engineer")
        self.assertIs(graph.goal_strategies["g1"], state.strategy)


class TestCompleteness(unittest.TestCase):

    def test_empty_state_lists_everything(self):
        result = validate_completeness(WizardState())
        self.assertFalse(result.is_complete)
        self.assertEqual(result.missing, [
            "Team.name",
            "Team.purpose",
            "Vision.text",
            "Mission.text",
            "Strategy.text",
            "at least one Value",
            "at least one Principle",
            "at least one Behavior",
            "at least one Goal",
        ])

    def test_complete_state(self):
        result = validate_completeness(make_complete_state())
        self.assertTrue(result.is_complete)
        self.assertEqual(result.missing, [])

    def test_gate_reports_incomplete_after_structure(self):
        state = make_complete_state().model_copy(update={"goals": ()})
        with self.assertRaises(IncompleteStateError) as ctx:
            check_persistable(state)
        self.assertEqual(ctx.exception.missing, ["at least one Goal"])

    def test_structural_issues_win_over_incompleteness(self):
        state = WizardState(team=Team(name="Ab"))
        with self.assertRaises(ValidationError) as ctx:
            check_persistable(state)
        self.assertEqual(_paths(ctx.exception.issues), ["Team.name"])

    def test_example_team_passes_gate(self):
        check_persistable(build_example_team())

    def test_gate_returns_resolved_graph_after_single_reference_pass(self):
        state = make_complete_state()
        with patch("teamup.validation.validate_references", wraps=validate_references) as references:
            graph = check_persistable(state)
        references.assert_called_once_with(state)
        self.assertIsInstance(graph, ResolvedGraph)
        self.assertIs(graph.state, state)
        self.assertEqual(graph.person_roles[state.people[0].id].name, "Engineer")


class TestShape(unittest.TestCase):
    """Shape rules enforced at construction/deserialization."""

    def test_legacy_source_tags_mapped(self):
        self.assertEqual(Value(label="Honesty", source="system").source, "system-template")
        self.assertEqual(Value(label="Honesty", source="ai").source, "ai-suggested")

    def test_unknown_source_rejected(self):
        with self.assertRaises(ShapeError):
            Value(label="Honesty", source="robot")

    def test_goal_from_bare_text_is_stable(self):
        first = Goal.model_validate("Grow revenue")
        second = Goal.model_validate("Grow revenue")
        self.assertEqual(first.id, second.id)
        self.assertEqual(first.text, "Grow revenue")

    def test_camel_case_wire_form(self):
        state = make_complete_state()
        wire = state.to_wire()
        self.assertIn("currentStep", wire)
        self.assertIn("derivedFromValues", wire["principles"][0])
        self.assertEqual(WizardState.model_validate(wire), state)


if __name__ == "__main__":
    unittest.main()
