# teamup/changes.py
"""
Typed edits and the pure `apply_change` reducer.

apply_change(state, change) never touches `state`; it returns a new snapshot
that shares every untouched sub-object with the old one. Edits that find
nothing to do (update/remove of an unknown id) return `state` itself, so the
history manager treats them as no-ops.

Referential integrity is deliberately NOT enforced here: a principle may point
at a value that does not exist yet. The validation gate rejects such
snapshots before they are persisted.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from teamup.derivation import derive_behaviors, derive_principles, extract_keywords, suggest_values, value_from_label
from teamup.team_templates import get_team_template
from teamup.wizard_state import (
    COLLECTIONS,
    DEFAULT_ACTOR,
    FIRST_STEP,
    LAST_STEP,
    Goal,
    STATEMENTS,
    SYSTEM_ACTOR,
    AuditLogEntry,
    GraphLayout,
    Position,
    Team,
    WizardState,
    entity_label,
    utc_now,
)


@dataclass(frozen=True)
class SetTeam:
    team: Team


@dataclass(frozen=True)
class UpdateTeam:
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class SetStatement:
    kind: str  # "vision" | "mission" | "strategy"
    record: Any = None


@dataclass(frozen=True)
class ReplaceEntities:
    collection: str
    items: Sequence[Any]


@dataclass(frozen=True)
class AddEntity:
    collection: str
    item: Any


@dataclass(frozen=True)
class UpdateEntity:
    collection: str
    entity_id: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveEntity:
    collection: str
    entity_id: str


@dataclass(frozen=True)
class RelinkPrinciple:
    principle_id: str
    value_ids: Sequence[str]


@dataclass(frozen=True)
class RelinkBehavior:
    behavior_id: str
    value_ids: Sequence[str]
    principle_ids: Sequence[str] = ()


@dataclass(frozen=True)
class UpdateNodeMetadata:
    node_id: str
    entity_type: str
    label: str
    description: Optional[str] = None
    tags: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class SetGraphLayout:
    positions: Mapping[str, Any]


@dataclass(frozen=True)
class DeriveFromMission:
    """Seed values from the mission keywords, then derive principles and behaviors for every value."""


@dataclass(frozen=True)
class ApplyTemplate:
    template_id: str


@dataclass(frozen=True)
class LoadState:
    state: WizardState


@dataclass(frozen=True)
class NextStep:
    pass


@dataclass(frozen=True)
class PrevStep:
    pass


@dataclass(frozen=True)
class GoToStep:
    step: int


# graph node type -> (singleton attribute or collection, text attribute)
_NODE_TARGETS = {
    "vision": ("vision", "text"),
    "mission": ("mission", "text"),
    "strategy": ("strategy", "text"),
    "value": ("values", "label"),
    "principle": ("principles", "label"),
    "behavior": ("behaviors", "label"),
    "goal": ("goals", "text"),
}


def _revise(item: Any, changes: Mapping[str, Any]) -> Any:
    """Return a re-validated copy of `item` with `changes` applied."""
    fields = type(item).model_fields
    unknown = [k for k in changes if k not in fields]
    if unknown:
        raise ValueError(f"Unknown field(s) for {type(item).__name__}: {', '.join(unknown)}")
    if "id" in changes and changes["id"] != item.id:
        raise ValueError(f"Identifier of {type(item).__name__} cannot be changed")
    data = item.model_dump()
    data.update(changes)
    return type(item).model_validate(data)


def _coerce(entity_type: type, item: Any) -> Any:
    if isinstance(item, entity_type):
        return item
    return entity_type.model_validate(item)


def _collection(collection: str) -> tuple[type, str]:
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}") from None


def _log(state: WizardState, actor: str, action: str, details: str, now: datetime) -> tuple:
    return state.audit_log + (AuditLogEntry(timestamp=now, actor=actor, action=action, details=details),)


def _replace_item(state: WizardState, collection: str, entity_id: str, revise) -> Optional[tuple]:
    items = getattr(state, collection)
    for index, item in enumerate(items):
        if item.id == entity_id:
            return items[:index] + (revise(item),) + items[index + 1:]
    return None


def _move_to_step(state: WizardState, step: int) -> WizardState:
    if step == state.current_step:
        return state
    return state.model_copy(update={"current_step": step})


def apply_change(
    state: WizardState,
    change: Any,
    actor: str = DEFAULT_ACTOR,
    now: Optional[datetime] = None,
) -> WizardState:
    now = now or utc_now()

    if isinstance(change, SetTeam):
        return state.model_copy(update={
            "team": change.team,
            "audit_log": _log(state, actor, "created", f"Team created: {change.team.name}", now),
        })

    if isinstance(change, UpdateTeam):
        team = _revise(state.team or Team(), change.changes)
        return state.model_copy(update={
            "team": team,
            "audit_log": _log(state, actor, "edited", "Team updated", now),
        })

    if isinstance(change, SetStatement):
        if change.kind not in STATEMENTS:
            raise ValueError(f"Unknown statement kind: {change.kind}")
        record = None if change.record is None else _coerce(STATEMENTS[change.kind], change.record)
        return state.model_copy(update={
            change.kind: record,
            "audit_log": _log(state, actor, "edited", f"{change.kind.capitalize()} updated", now),
        })

    if isinstance(change, ReplaceEntities):
        entity_type, _ = _collection(change.collection)
        items = tuple(_coerce(entity_type, i) for i in change.items)
        return state.model_copy(update={
            change.collection: items,
            "audit_log": _log(state, actor, "edited", f"{change.collection.capitalize()} updated", now),
        })

    if isinstance(change, AddEntity):
        entity_type, kind = _collection(change.collection)
        item = _coerce(entity_type, change.item)
        if state.find(change.collection, item.id) is not None:
            raise ValueError(f"{kind} with id {item.id} already exists")
        return state.model_copy(update={
            change.collection: getattr(state, change.collection) + (item,),
            "audit_log": _log(state, actor, "edited", f"Added {kind.lower()}: {entity_label(item)}", now),
        })

    if isinstance(change, UpdateEntity):
        _, kind = _collection(change.collection)
        items = _replace_item(state, change.collection, change.entity_id,
                              lambda item: _revise(item, change.changes))
        if items is None:
            return state
        updated = next(i for i in items if i.id == change.entity_id)
        return state.model_copy(update={
            change.collection: items,
            "audit_log": _log(state, actor, "edited", f"Updated {kind.lower()}: {entity_label(updated)}", now),
        })

    if isinstance(change, RemoveEntity):
        _, kind = _collection(change.collection)
        target = state.find(change.collection, change.entity_id)
        if target is None:
            return state
        return state.model_copy(update={
            change.collection: tuple(i for i in getattr(state, change.collection) if i.id != change.entity_id),
            "audit_log": _log(state, actor, "edited", f"Removed {kind.lower()}: {entity_label(target)}", now),
        })

    if isinstance(change, RelinkPrinciple):
        items = _replace_item(state, "principles", change.principle_id,
                              lambda p: _revise(p, {"derived_from_values": tuple(change.value_ids)}))
        if items is None:
            return state
        return state.model_copy(update={
            "principles": items,
            "audit_log": _log(state, actor, "edited", f"Relinked principle {change.principle_id}", now),
        })

    if isinstance(change, RelinkBehavior):
        items = _replace_item(state, "behaviors", change.behavior_id,
                              lambda b: _revise(b, {
                                  "derived_from_values": tuple(change.value_ids),
                                  "derived_from_principles": tuple(change.principle_ids),
                              }))
        if items is None:
            return state
        return state.model_copy(update={
            "behaviors": items,
            "audit_log": _log(state, actor, "edited", f"Relinked behavior {change.behavior_id}", now),
        })

    if isinstance(change, UpdateNodeMetadata):
        return _apply_node_metadata(state, change, actor, now)

    if isinstance(change, SetGraphLayout):
        positions = GraphLayout({k: _coerce(Position, v) for k, v in change.positions.items()})
        return state.model_copy(update={"graph_layout": positions})

    if isinstance(change, DeriveFromMission):
        return _derive_from_mission(state, actor, now)

    if isinstance(change, ApplyTemplate):
        return _apply_template(state, change.template_id, actor, now)

    if isinstance(change, LoadState):
        loaded = change.state
        return loaded.model_copy(update={
            "audit_log": _log(loaded, SYSTEM_ACTOR, "edited", "Team loaded from storage", now),
        })

    if isinstance(change, NextStep):
        return _move_to_step(state, min(LAST_STEP, state.current_step + 1))

    if isinstance(change, PrevStep):
        return _move_to_step(state, max(FIRST_STEP, state.current_step - 1))

    if isinstance(change, GoToStep):
        if not FIRST_STEP <= change.step <= LAST_STEP:
            raise ValueError(f"Step {change.step} is outside {FIRST_STEP}..{LAST_STEP}")
        return _move_to_step(state, change.step)

    raise TypeError(f"Unsupported change: {type(change).__name__}")


def _apply_node_metadata(state: WizardState, change: UpdateNodeMetadata, actor: str, now: datetime) -> WizardState:
    entity_type = change.entity_type.lower()
    details = f"Updated {change.entity_type}: {change.label}"
    meta = {"description": change.description, "tags": tuple(change.tags)}

    if entity_type == "purpose":
        if state.team is None:
            return state
        team_meta = (state.team.metadata.model_dump() if state.team.metadata else {})
        team_meta.update(meta)
        team = _revise(state.team, {"purpose": change.label, "metadata": team_meta})
        return state.model_copy(update={"team": team, "audit_log": _log(state, actor, "edited", details, now)})

    if entity_type not in _NODE_TARGETS:
        return state

    target, text_field = _NODE_TARGETS[entity_type]
    revise_changes = {text_field: change.label, **meta}

    if target in STATEMENTS:
        record = getattr(state, target)
        if record is None:
            return state
        return state.model_copy(update={
            target: _revise(record, revise_changes),
            "audit_log": _log(state, actor, "edited", details, now),
        })

    items = _replace_item(state, target, change.node_id, lambda item: _revise(item, revise_changes))
    if items is None:
        return state
    return state.model_copy(update={target: items, "audit_log": _log(state, actor, "edited", details, now)})


def _derive_from_mission(state: WizardState, actor: str, now: datetime) -> WizardState:
    mission_text = state.mission.text if state.mission else ""
    labels = {v.label.strip().lower() for v in state.values}
    new_values = tuple(
        v for v in suggest_values(extract_keywords(mission_text))
        if v.label.lower() not in labels and state.find("values", v.id) is None
    )
    values = state.values + new_values

    new_principles = tuple(p for p in derive_principles(values) if state.find("principles", p.id) is None)
    behavior_labels = {b.label.strip().lower() for b in state.behaviors}
    new_behaviors = tuple(
        b for b in derive_behaviors(values)
        if b.label.lower() not in behavior_labels and state.find("behaviors", b.id) is None
    )

    if not (new_values or new_principles or new_behaviors):
        return state
    details = (f"Derived from mission: {len(new_values)} value(s), "
               f"{len(new_principles)} principle(s), {len(new_behaviors)} behavior(s)")
    return state.model_copy(update={
        "values": values,
        "principles": state.principles + new_principles,
        "behaviors": state.behaviors + new_behaviors,
        "audit_log": _log(state, actor, "edited", details, now),
    })


def _statement(state: WizardState, kind: str, text: str) -> Any:
    record = getattr(state, kind)
    if record is None:
        return STATEMENTS[kind](text=text)
    return _revise(record, {"text": text})


def _apply_template(state: WizardState, template_id: str, actor: str, now: datetime) -> WizardState:
    # the template replaces the value graph; principles and behaviors are re-derived from it later
    template = get_team_template(template_id)
    data = template.data
    explanation = f"From the {template.name} template"
    return state.model_copy(update={
        "team": _revise(state.team or Team(), {"purpose": data.team_purpose}),
        "vision": _statement(state, "vision", data.vision),
        "mission": _statement(state, "mission", data.mission),
        "strategy": _statement(state, "strategy", data.strategy),
        "values": tuple(value_from_label(label, explanation) for label in data.values),
        "principles": (),
        "behaviors": (),
        "goals": tuple(Goal.model_validate(text) for text in data.goals),
        "audit_log": _log(state, actor, "edited", f"Applied template: {template.name}", now),
    })
