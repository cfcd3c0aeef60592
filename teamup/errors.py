# teamup/errors.py
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class TeamUpError(Exception):
    pass


class ValidationError(TeamUpError):
    """Structural field violation or dangling reference. Never persisted."""

    def __init__(self, issues: Iterable[ValidationIssue]):
        self.issues = list(issues)
        super().__init__("; ".join(str(i) for i in self.issues))


class IncompleteStateError(TeamUpError):
    """Snapshot is structurally valid but misses required items."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Missing: {', '.join(self.missing)}")


class StorageError(TeamUpError):
    pass


class StorageReadError(StorageError):
    pass


class StorageWriteError(StorageError):
    pass
