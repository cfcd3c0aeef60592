# teamup/validation.py
"""
Validation gate applied before any snapshot crosses the persistence boundary.

Three independent checks:
  * validate_structure    -- field rules (lengths, id formats, logo, email);
                             usable on half-filled, in-progress snapshots
  * validate_references   -- every derivation / role / strategy link resolves
  * validate_completeness -- everything required for a saved team is present

check_persistable() combines them: structural and reference problems raise
ValidationError first, then missing items raise IncompleteStateError.
"""
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse
from uuid import UUID

from teamup.errors import IncompleteStateError, ValidationError, ValidationIssue
from teamup.wizard_state import (
    FIRST_STEP,
    LAST_STEP,
    Behavior,
    Principle,
    Role,
    Strategy,
    Value,
    WizardState,
    effective_value_ids,
)

TEAM_NAME_MIN, TEAM_NAME_MAX = 3, 100
STATEMENT_MIN = 10
VALUE_LABEL_MIN, VALUE_LABEL_MAX = 2, 50
PRINCIPLE_LABEL_MIN = 5
BEHAVIOR_LABEL_MIN = 5
GOAL_TEXT_MIN = 3
NAME_MIN, NAME_MAX = 2, 100

GOAL_TOKEN_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class CompletenessResult:
    is_complete: bool
    missing: list[str]


@dataclass(frozen=True)
class ResolvedGraph:
    """Reference-checked view of a snapshot, produced only by the gate."""
    state: WizardState
    principle_values: dict[str, tuple[Value, ...]] = field(default_factory=dict)
    behavior_values: dict[str, tuple[Value, ...]] = field(default_factory=dict)
    behavior_principles: dict[str, tuple[Principle, ...]] = field(default_factory=dict)
    person_roles: dict[str, Role] = field(default_factory=dict)
    goal_strategies: dict[str, Strategy] = field(default_factory=dict)


def is_uuid(value: str) -> bool:
    if not isinstance(value, str) or len(value) != 36:
        return False
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def is_goal_id(value: str) -> bool:
    return is_uuid(value) or bool(GOAL_TOKEN_RE.match(value or ""))


def is_valid_logo(value: str) -> bool:
    if value.startswith("data:image/"):
        return True
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _length(issues: list, path: str, text: str, minimum: int, maximum: Optional[int] = None) -> None:
    size = len(text.strip())
    if maximum is None:
        if size < minimum:
            issues.append(ValidationIssue(path, f"must be at least {minimum} characters"))
    elif not minimum <= size <= maximum:
        issues.append(ValidationIssue(path, f"must be between {minimum} and {maximum} characters"))


def _ids(issues: list, prefix: str, items, check=is_uuid) -> None:
    seen = set()
    for index, item in enumerate(items):
        path = f"{prefix}[{index}].id"
        if not check(item.id):
            issues.append(ValidationIssue(path, f"malformed identifier {item.id!r}"))
        if item.id in seen:
            issues.append(ValidationIssue(path, f"duplicate identifier {item.id!r}"))
        seen.add(item.id)


def validate_structure(state: WizardState) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    if not FIRST_STEP <= state.current_step <= LAST_STEP:
        issues.append(ValidationIssue("currentStep", f"must be between {FIRST_STEP} and {LAST_STEP}"))

    team = state.team
    if team is not None:
        if team.id and not is_uuid(team.id):
            issues.append(ValidationIssue("Team.id", f"malformed identifier {team.id!r}"))
        if team.name:
            _length(issues, "Team.name", team.name, TEAM_NAME_MIN, TEAM_NAME_MAX)
        if not team.created_by.strip():
            issues.append(ValidationIssue("Team.createdBy", "is required"))
        if team.logo and not is_valid_logo(team.logo):
            issues.append(ValidationIssue("Team.logo", "must be an http(s) URL or a data:image/ URI"))

    for kind in ("vision", "mission", "strategy"):
        record = getattr(state, kind)
        if record is None:
            continue
        label = kind.capitalize()
        if not is_uuid(record.id):
            issues.append(ValidationIssue(f"{label}.id", f"malformed identifier {record.id!r}"))
        if record.text:
            _length(issues, f"{label}.text", record.text, STATEMENT_MIN)

    _ids(issues, "values", state.values)
    for i, value in enumerate(state.values):
        _length(issues, f"values[{i}].label", value.label, VALUE_LABEL_MIN, VALUE_LABEL_MAX)

    _ids(issues, "principles", state.principles)
    for i, principle in enumerate(state.principles):
        _length(issues, f"principles[{i}].label", principle.label, PRINCIPLE_LABEL_MIN)

    _ids(issues, "behaviors", state.behaviors)
    for i, behavior in enumerate(state.behaviors):
        _length(issues, f"behaviors[{i}].label", behavior.label, BEHAVIOR_LABEL_MIN)

    _ids(issues, "goals", state.goals, check=is_goal_id)
    for i, goal in enumerate(state.goals):
        _length(issues, f"goals[{i}].text", goal.text, GOAL_TEXT_MIN)

    _ids(issues, "roles", state.roles)
    for i, role in enumerate(state.roles):
        _length(issues, f"roles[{i}].name", role.name, NAME_MIN, NAME_MAX)

    _ids(issues, "people", state.people)
    for i, person in enumerate(state.people):
        _length(issues, f"people[{i}].name", person.name, NAME_MIN, NAME_MAX)
        if person.email and not EMAIL_RE.match(person.email):
            issues.append(ValidationIssue(f"people[{i}].email", "invalid email"))

    return issues


def _dangling(issues: list, path: str, refs, known: dict) -> None:
    for j, ref in enumerate(refs):
        if ref not in known:
            issues.append(ValidationIssue(f"{path}[{j}]", f"references unknown id {ref!r}"))


def validate_references(state: WizardState) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    values = {v.id: v for v in state.values}
    principles = {p.id: p for p in state.principles}
    roles = {r.id: r for r in state.roles}

    for i, principle in enumerate(state.principles):
        _dangling(issues, f"principles[{i}].derivedFromValues", principle.derived_from_values, values)

    for i, behavior in enumerate(state.behaviors):
        _dangling(issues, f"behaviors[{i}].derivedFromValues", behavior.derived_from_values, values)
        _dangling(issues, f"behaviors[{i}].derivedFromPrinciples", behavior.derived_from_principles, principles)

    for i, person in enumerate(state.people):
        if person.role_id not in roles:
            issues.append(ValidationIssue(f"people[{i}].roleId", f"references unknown id {person.role_id!r}"))

    strategy_id = state.strategy.id if state.strategy else None
    for i, goal in enumerate(state.goals):
        if goal.strategy_id and goal.strategy_id != strategy_id:
            issues.append(ValidationIssue(f"goals[{i}].strategyId", f"references unknown id {goal.strategy_id!r}"))

    return issues


def resolve_references(state: WizardState) -> ResolvedGraph:
    issues = validate_references(state)
    if issues:
        raise ValidationError(issues)
    return _build_graph(state)


def _build_graph(state: WizardState) -> ResolvedGraph:
    # callers must have checked references already
    values = {v.id: v for v in state.values}
    principles = {p.id: p for p in state.principles}
    roles = {r.id: r for r in state.roles}

    def _behavior_values(behavior: Behavior) -> tuple[Value, ...]:
        return tuple(values[v] for v in effective_value_ids(state, behavior))

    return ResolvedGraph(
        state=state,
        principle_values={p.id: tuple(values[v] for v in p.derived_from_values) for p in state.principles},
        behavior_values={b.id: _behavior_values(b) for b in state.behaviors},
        behavior_principles={b.id: tuple(principles[p] for p in b.derived_from_principles) for b in state.behaviors},
        person_roles={p.id: roles[p.role_id] for p in state.people},
        goal_strategies={g.id: state.strategy for g in state.goals if g.strategy_id},
    )


def validate_completeness(state: WizardState) -> CompletenessResult:
    missing: list[str] = []
    team = state.team

    if not (team and team.name.strip()):
        missing.append("Team.name")
    if not (team and team.purpose.strip()):
        missing.append("Team.purpose")
    if not (state.vision and state.vision.text.strip()):
        missing.append("Vision.text")
    if not (state.mission and state.mission.text.strip()):
        missing.append("Mission.text")
    if not (state.strategy and state.strategy.text.strip()):
        missing.append("Strategy.text")
    if not state.values:
        missing.append("at least one Value")
    if not state.principles:
        missing.append("at least one Principle")
    if not state.behaviors:
        missing.append("at least one Behavior")
    if not state.goals:
        missing.append("at least one Goal")

    return CompletenessResult(is_complete=not missing, missing=missing)


def check_persistable(state: WizardState) -> ResolvedGraph:
    issues = validate_structure(state) + validate_references(state)
    if issues:
        raise ValidationError(issues)
    completeness = validate_completeness(state)
    if not completeness.is_complete:
        raise IncompleteStateError(completeness.missing)
    return _build_graph(state)
