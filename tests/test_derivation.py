"""Tests for rule-based derivation (teamup/derivation.py) and team templates."""

import unittest

from teamup.changes import ApplyTemplate, DeriveFromMission, SetStatement, apply_change
from teamup.derivation import (
    derive_behaviors,
    derive_principles,
    extract_keywords,
    suggest_values,
    value_from_label,
)
from teamup.team_templates import TEAM_TEMPLATES, get_team_template
from teamup.validation import ResolvedGraph, check_persistable
from teamup.wizard_state import Principle, Team, Value, WizardState


class TestKeywordsAndValues(unittest.TestCase):

    def test_extract_keywords_drops_noise(self):
        keywords = extract_keywords("We build safe, fast tools for our users and teams!")
        self.assertEqual(keywords, ["build", "safe", "fast", "tools", "users", "teams"])

    def test_extract_keywords_is_unique_and_capped(self):
        text = "alpha beta gamma delta alpha epsilon zeta theta iota kappa lambda"
        keywords = extract_keywords(text)
        self.assertEqual(len(keywords), 8)
        self.assertEqual(keywords[:2], ["alpha", "beta"])
        self.assertEqual(keywords.count("alpha"), 1)

    def test_suggest_values_direct_and_fragment_matches(self):
        values = suggest_values(["build", "safe", "fast", "tools", "users", "teams"])
        self.assertEqual([v.label for v in values], ["Safety", "Speed", "User Centricity", "Teamwork"])
        self.assertTrue(all(v.source == "system-template" for v in values))
        self.assertEqual(values[0].explanation, 'Derived from keyword "safe" in mission statement.')

    def test_suggest_values_skips_repeated_labels(self):
        values = suggest_values(["safe", "safety"])
        self.assertEqual([v.label for v in values], ["Safety"])

    def test_suggestions_are_deterministic(self):
        first = suggest_values(["engineering"])
        second = suggest_values(["engineering"])
        self.assertEqual(first, second)
        self.assertEqual(first[0].label, "Engineering Excellence")


class TestPrinciplesAndBehaviors(unittest.TestCase):

    def test_library_principle_preferred(self):
        candor = value_from_label("Radical Candor")
        principle = derive_principles([candor])[0]
        self.assertEqual(principle.label, "Radical Candor")
        self.assertEqual(principle.derived_from_values, (candor.id,))

    def test_generic_principle_fallback(self):
        integrity = value_from_label("Integrity")
        principle = derive_principles([integrity])[0]
        self.assertEqual(principle.label, "We believe in Integrity as a core driver of our success.")

    def test_behaviors_follow_value_and_hint_matches(self):
        reliability = value_from_label("Reliability")
        speed = value_from_label("Speed")
        behaviors = derive_behaviors([reliability, speed])
        self.assertEqual([b.label for b in behaviors], ["Balance speed with reliability"])
        self.assertEqual(behaviors[0].derived_from_values, (reliability.id,))

    def test_quality_behaviors(self):
        behaviors = derive_behaviors([value_from_label("Quality")])
        self.assertIn("Ensure high code quality standards", [b.label for b in behaviors])


class TestTemplates(unittest.TestCase):

    def test_templates_loaded(self):
        self.assertEqual(sorted(TEAM_TEMPLATES), ["creative", "enterprise", "impact", "startup"])
        self.assertEqual(get_team_template("startup").name, "The Disruptor")

    def test_unknown_template(self):
        with self.assertRaises(ValueError):
            get_team_template("nope")


class TestDerivationEdits(unittest.TestCase):

    def setUp(self):
        self.team = Team(name="Infra Core")
        self.state = WizardState(team=self.team)

    def test_apply_template_fills_statements_values_and_goals(self):
        stale = Principle(label="Old principle", derived_from_values=("gone",))
        state = self.state.model_copy(update={"principles": (stale,)})

        new = apply_change(state, ApplyTemplate("enterprise"))

        self.assertEqual(new.team.id, self.team.id)
        self.assertEqual(new.team.name, "Infra Core")
        self.assertEqual(new.team.purpose, "To provide the reliable backbone that powers the global economy.")
        self.assertEqual([v.label for v in new.values], ["Integrity", "Reliability", "Security First", "Long-term Thinking"])
        self.assertEqual(new.principles, ())
        self.assertEqual(len(new.goals), 3)
        self.assertTrue(new.mission.text.startswith("Deliver 99.999% uptime"))
        self.assertEqual(new.audit_log[-1].details, "Applied template: The Steward")

    def test_apply_unknown_template_rejected(self):
        with self.assertRaises(ValueError):
            apply_change(self.state, ApplyTemplate("nope"))

    def test_template_then_derivation_passes_gate(self):
        state = apply_change(self.state, ApplyTemplate("enterprise"))
        derived = apply_change(state, DeriveFromMission())

        labels = [v.label for v in derived.values]
        self.assertIn("Engineering Excellence", labels)
        self.assertEqual(len(derived.principles), len(derived.values))
        self.assertIn("Balance speed with reliability", [b.label for b in derived.behaviors])

        graph = check_persistable(derived)
        self.assertIsInstance(graph, ResolvedGraph)
        for principle in derived.principles:
            self.assertEqual(len(graph.principle_values[principle.id]), 1)

    def test_derivation_is_idempotent(self):
        state = apply_change(self.state, SetStatement("mission", {"text": "Keep customers safe with reliable tools"}))
        derived = apply_change(state, DeriveFromMission())
        self.assertGreater(len(derived.values), 0)
        self.assertIs(apply_change(derived, DeriveFromMission()), derived)

    def test_existing_value_labels_are_not_duplicated(self):
        mine = Value(label="Safety")
        state = self.state.model_copy(update={"values": (mine,)})
        state = apply_change(state, SetStatement("mission", {"text": "Keep everyone safe"}))
        derived = apply_change(state, DeriveFromMission())
        self.assertEqual([v.label for v in derived.values], ["Safety"])
        self.assertEqual(derived.principles[0].derived_from_values, (mine.id,))

    def test_nothing_to_derive_returns_same_object(self):
        self.assertIs(apply_change(self.state, DeriveFromMission()), self.state)


if __name__ == "__main__":
    unittest.main()
