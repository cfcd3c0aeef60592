# teamup/derivation.py
"""
Deterministic, rule-based derivation of the value graph.

    mission text -> keywords -> Values -> Principles + Behaviors

Every derived entity carries `derived_from_values` links back to the value it
came from and a name-based UUID, so running the rules twice on the same input
yields the same graph.
"""
import re
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence

import commentjson

from teamup.wizard_state import Behavior, Principle, Value

DERIVATION_LIBRARY_PATH = Path(__file__).parent / "templates" / "derivation_library.jsonc"

# namespace for name-based ids of derived entities
DERIVED_ID_NAMESPACE = uuid.UUID("7d3f9a52-4c1e-4b8a-9f60-2a5e1c0b7e11")

MAX_KEYWORDS = 8
MIN_KEYWORD_LENGTH = 3


def _load_library() -> Dict[str, Any]:
    """
    Load the derivation rule tables from their JSON-with-comments file.
    Fails fast if the file or a required table is missing.
    """
    if not DERIVATION_LIBRARY_PATH.exists():
        raise FileNotFoundError(f"Derivation library not found at '{DERIVATION_LIBRARY_PATH}'.")

    with DERIVATION_LIBRARY_PATH.open("r", encoding="utf-8") as f:
        data = commentjson.load(f)

    for key, kind in (("STOP_WORDS", list), ("KEYWORD_VALUES", dict), ("BEHAVIOR_HINTS", dict),
                      ("PRINCIPLES", list), ("BEHAVIORS", list)):
        if not isinstance(data.get(key), kind):
            raise ValueError(f"Derivation library missing or invalid key: {key}")
    return data


_LIBRARY = _load_library()
STOP_WORDS: frozenset = frozenset(_LIBRARY["STOP_WORDS"])
KEYWORD_VALUES: Dict[str, str] = _LIBRARY["KEYWORD_VALUES"]
BEHAVIOR_HINTS: Dict[str, str] = _LIBRARY["BEHAVIOR_HINTS"]
PRINCIPLE_LIBRARY: tuple = tuple(_LIBRARY["PRINCIPLES"])
BEHAVIOR_LIBRARY: tuple = tuple(_LIBRARY["BEHAVIORS"])


def derived_id(*parts: str) -> str:
    return str(uuid.uuid5(DERIVED_ID_NAMESPACE, ":".join(parts)))


def value_from_label(label: str, explanation: Optional[str] = None) -> Value:
    return Value(
        id=derived_id("value", label.strip().lower()),
        label=label,
        source="system-template",
        explanation=explanation,
    )


def extract_keywords(text: str) -> list[str]:
    """Unique significant words in order of appearance, at most MAX_KEYWORDS."""
    words = re.sub(r"[^\w\s]", "", text.lower(), flags=re.ASCII).split()
    keywords = [w for w in words if len(w) >= MIN_KEYWORD_LENGTH and w not in STOP_WORDS]
    return list(dict.fromkeys(keywords))[:MAX_KEYWORDS]


def _value_label_for(keyword: str) -> str | None:
    label = KEYWORD_VALUES.get(keyword)
    if label:
        return label
    # fragment match: "engineering" -> "engineer"
    for fragment, candidate in KEYWORD_VALUES.items():
        if fragment in keyword:
            return candidate
    return None


def suggest_values(keywords: Iterable[str]) -> list[Value]:
    suggestions: list[Value] = []
    seen: set[str] = set()
    for keyword in keywords:
        label = _value_label_for(keyword)
        if label and label not in seen:
            seen.add(label)
            suggestions.append(value_from_label(label, f'Derived from keyword "{keyword}" in mission statement.'))
    return suggestions


def derive_principles(values: Sequence[Value]) -> list[Principle]:
    """One principle per value: the first library principle naming it, else a generic one."""
    principles = []
    for value in values:
        match = next((p for p in PRINCIPLE_LIBRARY if value.label in p), None)
        if match:
            label, explanation = match, f"Derived from {value.label}"
        else:
            label = f"We believe in {value.label} as a core driver of our success."
            explanation = f"Core principle based on {value.label}"
        principles.append(Principle(
            id=derived_id("principle", value.id),
            label=label,
            source="system-template",
            explanation=explanation,
            derived_from_values=(value.id,),
        ))
    return principles


def _matches(behavior: str, value_label: str) -> bool:
    text = behavior.lower()
    label = value_label.lower()
    hint = BEHAVIOR_HINTS.get(label)
    return label in text or bool(hint and hint in text)


def derive_behaviors(values: Sequence[Value]) -> list[Behavior]:
    """Library behaviors relevant to each value; a behavior is used at most once."""
    behaviors = []
    used: set[str] = set()
    for value in values:
        for text in BEHAVIOR_LIBRARY:
            if text in used or not _matches(text, value.label):
                continue
            used.add(text)
            behaviors.append(Behavior(
                id=derived_id("behavior", value.id, text.lower()),
                label=text,
                source="system-template",
                explanation=f'Standard behavior for value "{value.label}"',
                derived_from_values=(value.id,),
            ))
    return behaviors
