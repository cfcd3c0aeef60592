# teamup/wizard_state.py
"""
Immutable snapshot types for one team's identity document.

Every model is frozen; collections are tuples. An edit never mutates a
snapshot, it builds a new one (see teamup.changes) and shares whatever did not
change. The wire form is camelCase (`derivedFromValues`, `currentStep`, ...)
while Python code uses the snake_case field names.

Only the *shape* is enforced here (types, required keys, provenance enum).
Length/format rules and referential integrity are the job of
teamup.validation, so a half-filled wizard state can always be represented.
"""
import hashlib
from datetime import datetime, timezone
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Provenance = Literal["user", "ai-suggested", "system-template"]

DEFAULT_ACTOR = "current-user"
SYSTEM_ACTOR = "system"

WIZARD_STEPS: tuple[str, ...] = (
    "create_team",
    "purpose",
    "vision",
    "mission",
    "strategy",
    "values",
    "principles",
    "behaviors",
    "goals",
    "roles",
    "save",
)
FIRST_STEP = 0
LAST_STEP = len(WIZARD_STEPS) - 1

# older documents used the short provenance tags
_LEGACY_SOURCES = {"ai": "ai-suggested", "system": "system-template"}


def new_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class TeamMetadata(SnapshotModel):
    description: Optional[str] = None
    tags: tuple[str, ...] = ()


class Team(SnapshotModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    purpose: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str = DEFAULT_ACTOR
    logo: Optional[str] = None
    metadata: Optional[TeamMetadata] = None


class Vision(SnapshotModel):
    id: str = Field(default_factory=new_id)
    text: str = ""
    archetype: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()


class Mission(SnapshotModel):
    id: str = Field(default_factory=new_id)
    text: str = ""
    keywords: tuple[str, ...] = ()
    description: Optional[str] = None
    tags: tuple[str, ...] = ()


class Strategy(SnapshotModel):
    id: str = Field(default_factory=new_id)
    text: str = ""
    description: Optional[str] = None
    tags: tuple[str, ...] = ()


class _SourcedEntity(SnapshotModel):
    id: str = Field(default_factory=new_id)
    label: str
    source: Provenance = "user"
    explanation: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()

    @field_validator("source", mode="before")
    @classmethod
    def _map_legacy_source(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _LEGACY_SOURCES.get(value, value)
        return value


class Value(_SourcedEntity):
    pass


class Principle(_SourcedEntity):
    derived_from_values: tuple[str, ...] = ()


class Behavior(_SourcedEntity):
    # derived_from_values is the canonical link; principle links are a
    # convenience and contribute their own values transitively.
    derived_from_values: tuple[str, ...] = ()
    derived_from_principles: tuple[str, ...] = ()


class Goal(SnapshotModel):
    id: str = Field(default_factory=new_id)
    text: str
    strategy_id: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _accept_free_text(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"id": goal_token(data), "text": data}
        return data


class Role(SnapshotModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: Optional[str] = None


class Person(SnapshotModel):
    id: str = Field(default_factory=new_id)
    name: str
    role_id: str
    email: Optional[str] = None
    description: Optional[str] = None


class AuditLogEntry(SnapshotModel):
    timestamp: datetime
    actor: str
    action: str
    details: str = ""


class Position(SnapshotModel):
    x: float
    y: float


class GraphLayout(dict):
    """
    Node id -> Position mapping that refuses in-place edits. Every snapshot in
    the history may hold the same layout object.
    """

    def _read_only(self, *args, **kwargs):
        raise TypeError("graph layout is read-only; dispatch SetGraphLayout to change it")

    __setitem__ = __delitem__ = __ior__ = _read_only
    clear = pop = popitem = setdefault = update = _read_only

    def __reduce__(self):
        return (type(self), (dict(self),))


class WizardState(SnapshotModel):
    team: Optional[Team] = None
    vision: Optional[Vision] = None
    mission: Optional[Mission] = None
    strategy: Optional[Strategy] = None
    values: tuple[Value, ...] = ()
    principles: tuple[Principle, ...] = ()
    behaviors: tuple[Behavior, ...] = ()
    goals: tuple[Goal, ...] = ()
    roles: tuple[Role, ...] = ()
    people: tuple[Person, ...] = ()
    current_step: int = FIRST_STEP
    audit_log: tuple[AuditLogEntry, ...] = ()
    graph_layout: Optional[dict[str, Position]] = None

    @field_validator("graph_layout", mode="after")
    @classmethod
    def _freeze_layout(cls, value: Optional[dict[str, Position]]) -> Optional[GraphLayout]:
        return None if value is None else GraphLayout(value)

    def find(self, collection: str, entity_id: str):
        for item in getattr(self, collection):
            if item.id == entity_id:
                return item
        return None


class SavedTeam(SnapshotModel):
    id: str
    name: str
    updated_at: datetime
    state: WizardState


# collection attribute -> (entity type, display name)
COLLECTIONS: dict[str, tuple[type, str]] = {
    "values": (Value, "Value"),
    "principles": (Principle, "Principle"),
    "behaviors": (Behavior, "Behavior"),
    "goals": (Goal, "Goal"),
    "roles": (Role, "Role"),
    "people": (Person, "Person"),
}

STATEMENTS: dict[str, type] = {
    "vision": Vision,
    "mission": Mission,
    "strategy": Strategy,
}

EMPTY_STATE = WizardState()


def goal_token(text: str) -> str:
    """Stable short id for a goal given as bare text."""
    digest = hashlib.sha1(text.strip().encode("utf-8")).hexdigest()[:10]
    return f"g-{digest}"


def entity_label(item: Any) -> str:
    for attr in ("label", "name", "text"):
        value = getattr(item, attr, None)
        if value:
            return str(value)
    return str(getattr(item, "id", ""))


def effective_value_ids(state: WizardState, behavior: Behavior) -> tuple[str, ...]:
    """
    Values a behavior operationalizes: its direct links plus the values of
    every principle it points to. Unknown principle ids are skipped; use
    teamup.validation to detect them.
    """
    seen: dict[str, None] = dict.fromkeys(behavior.derived_from_values)
    for principle_id in behavior.derived_from_principles:
        principle = state.find("principles", principle_id)
        if principle is not None:
            seen.update(dict.fromkeys(principle.derived_from_values))
    return tuple(seen)
