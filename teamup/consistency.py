# teamup/consistency.py
from dataclasses import dataclass, field

from teamup.wizard_state import Value, WizardState, effective_value_ids

# value pairs that usually need behaviors clarifying the trade-off
KNOWN_TENSIONS: tuple[tuple[str, str, str], ...] = (
    ("Speed", "Safety", "Ensure behaviors clarify trade-offs."),
    ("Innovation", "Reliability", "Define failure boundaries."),
)


@dataclass(frozen=True)
class ConsistencyReport:
    coverage_pct: int
    values_without_behaviors: list[Value] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.coverage_pct == 100 and not self.conflicts


def check_consistency(state: WizardState) -> ConsistencyReport:
    """
    How well behaviors operationalize the values: a value is covered when at
    least one behavior reaches it, directly or through a linked principle.
    """
    covered: set[str] = set()
    for behavior in state.behaviors:
        covered.update(effective_value_ids(state, behavior))

    uncovered = [v for v in state.values if v.id not in covered]
    coverage = 0
    if state.values:
        coverage = round((len(state.values) - len(uncovered)) / len(state.values) * 100)

    labels = {v.label.strip().lower() for v in state.values}
    conflicts = [
        f"Potential tension between '{a}' and '{b}'. {hint}"
        for a, b, hint in KNOWN_TENSIONS
        if a.lower() in labels and b.lower() in labels
    ]
    return ConsistencyReport(coverage_pct=coverage, values_without_behaviors=uncovered, conflicts=conflicts)
