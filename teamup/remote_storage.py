# teamup/remote_storage.py
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError as ShapeError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from teamup.db_connection import build_db_session_factory, get_db_engine
from teamup.entities import Base, StorageFlag, TeamRecord
from teamup.errors import StorageReadError, StorageWriteError
from teamup.storage_adapter import StorageAdapter
from teamup.wizard_state import SavedTeam

logger = logging.getLogger("teamup_storage")


def _aware(value: datetime) -> datetime:
    # sqlite drops tzinfo; stored values are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_saved_team(row: TeamRecord) -> SavedTeam:
    return SavedTeam.model_validate({
        "id": row.id,
        "name": row.name,
        "updatedAt": _aware(row.updated_at),
        "state": row.state,
    })


class RemoteStorageAdapter(StorageAdapter):
    """
    Remote store backed by a SQL database (postgres in production).
    One row per SavedTeam; each operation is a single transaction.
    """
    name = "remote"

    def __init__(self, engine: Engine) -> None:
        super().__init__()
        self.engine = engine
        Base.metadata.create_all(self.engine)
        self.Session = build_db_session_factory(self.engine)

    @classmethod
    def from_url(cls, storage_url: str, storage_key: str) -> "RemoteStorageAdapter":
        return cls(get_db_engine(storage_url, storage_key))

    def _fetch_all(self) -> list[SavedTeam]:
        session = self.Session()
        try:
            rows = session.query(TeamRecord).all()
            return [_to_saved_team(r) for r in rows]
        except (SQLAlchemyError, ShapeError) as e:
            raise StorageReadError(f"Failed to list teams: {e}") from e
        finally:
            session.close()

    def _fetch_one(self, team_id: str) -> Optional[SavedTeam]:
        session = self.Session()
        try:
            row = session.get(TeamRecord, team_id)
            return _to_saved_team(row) if row is not None else None
        except (SQLAlchemyError, ShapeError) as e:
            raise StorageReadError(f"Failed to load team {team_id}: {e}") from e
        finally:
            session.close()

    def _upsert(self, saved: SavedTeam) -> None:
        session = self.Session()
        try:
            session.merge(
                TeamRecord(
                    id=saved.id,
                    name=saved.name,
                    updated_at=saved.updated_at,
                    state=saved.state.to_wire(),
                )
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageWriteError(f"Failed to save team {saved.id}: {e}") from e
        finally:
            session.close()

    def _remove(self, team_id: str) -> None:
        session = self.Session()
        try:
            session.query(TeamRecord).filter(TeamRecord.id == team_id).delete()
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageWriteError(f"Failed to delete team {team_id}: {e}") from e
        finally:
            session.close()

    def _read_flag(self, key: str) -> bool:
        session = self.Session()
        try:
            flag = session.get(StorageFlag, key)
            return bool(flag and flag.value)
        except SQLAlchemyError as e:
            raise StorageReadError(f"Failed to read flag {key}: {e}") from e
        finally:
            session.close()

    def _write_flag(self, key: str, value: bool) -> None:
        session = self.Session()
        try:
            session.merge(StorageFlag(key=key, value=bool(value)))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageWriteError(f"Failed to write flag {key}: {e}") from e
        finally:
            session.close()
