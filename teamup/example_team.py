# teamup/example_team.py
from pathlib import Path
from typing import Any, Dict, Optional
from datetime import datetime

import commentjson

from teamup.wizard_state import AuditLogEntry, SavedTeam, WizardState, utc_now

EXAMPLE_TEMPLATE_PATH = Path(__file__).parent / "templates" / "example_team.jsonc"
EXAMPLE_TEAM_ID = "6f1c2a7e-0b1d-4c3e-9a51-e5a3c0d7b001"
EXAMPLE_TEAM_NAME = "Product Innovation Squad"


def _load_template() -> Dict[str, Any]:
    """
    Load the demonstration team from its JSON-with-comments template.
    Fails fast if the file or the team block is missing.
    """
    if not EXAMPLE_TEMPLATE_PATH.exists():
        raise FileNotFoundError(f"Example team template not found at '{EXAMPLE_TEMPLATE_PATH}'.")

    with EXAMPLE_TEMPLATE_PATH.open("r", encoding="utf-8") as f:
        data = commentjson.load(f)

    team = data.get("team")
    if not isinstance(team, dict) or team.get("id") != EXAMPLE_TEAM_ID:
        raise ValueError("Example team template is missing its well-known team block")
    return data


def build_example_team(now: Optional[datetime] = None) -> WizardState:
    now = now or utc_now()
    data = _load_template()
    data["team"]["createdAt"] = now.isoformat()
    state = WizardState.model_validate(data)
    return state.model_copy(update={
        "audit_log": (AuditLogEntry(timestamp=now, actor="System", action="created", details="Example team created"),),
    })


def build_example_saved_team(now: Optional[datetime] = None) -> SavedTeam:
    now = now or utc_now()
    state = build_example_team(now)
    return SavedTeam(id=state.team.id, name=state.team.name, updated_at=now, state=state)
