# teamup/team_templates.py
from pathlib import Path
from typing import Any, Dict

import commentjson

from teamup.wizard_state import SnapshotModel

TEAM_TEMPLATES_PATH = Path(__file__).parent / "templates" / "team_templates.jsonc"


class TemplateData(SnapshotModel):
    team_purpose: str
    vision: str
    mission: str
    strategy: str
    values: tuple[str, ...]
    goals: tuple[str, ...]


class TeamTemplate(SnapshotModel):
    id: str
    name: str
    description: str
    icon: str
    data: TemplateData


def _load_templates() -> Dict[str, TeamTemplate]:
    if not TEAM_TEMPLATES_PATH.exists():
        raise FileNotFoundError(f"Team templates not found at '{TEAM_TEMPLATES_PATH}'.")

    with TEAM_TEMPLATES_PATH.open("r", encoding="utf-8") as f:
        data: Dict[str, Any] = commentjson.load(f)

    if not isinstance(data.get("TEMPLATES"), list):
        raise ValueError("Team templates file missing or invalid key: TEMPLATES")
    templates = [TeamTemplate.model_validate(t) for t in data["TEMPLATES"]]
    return {t.id: t for t in templates}


TEAM_TEMPLATES: Dict[str, TeamTemplate] = _load_templates()


def get_team_template(template_id: str) -> TeamTemplate:
    try:
        return TEAM_TEMPLATES[template_id]
    except KeyError:
        raise ValueError(f"Unknown team template: {template_id}") from None
