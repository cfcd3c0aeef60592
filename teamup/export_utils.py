# teamup/export_utils.py
import json

from pydantic import ValidationError as ShapeError

from teamup.errors import ValidationError, ValidationIssue
from teamup.wizard_state import WizardState


def export_team_json(state: WizardState, indent: int = 2) -> str:
    return json.dumps(state.to_wire(), ensure_ascii=False, indent=indent)


def import_team_json(text: str) -> WizardState:
    """
    Parse an exported document back into a snapshot. Shape problems are
    reported with field paths, like the validation gate does.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError([ValidationIssue("$", f"not valid JSON: {e.msg}")]) from e
    try:
        return WizardState.model_validate(data)
    except ShapeError as e:
        raise ValidationError(
            ValidationIssue(".".join(str(p) for p in err["loc"]) or "$", err["msg"]) for err in e.errors()
        ) from e
