# teamup/entities.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()

# JSONB on postgres, plain JSON elsewhere (sqlite in tests)
StateJSON = JSON().with_variant(JSONB(), "postgresql")


class TeamRecord(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # full WizardState snapshot, camelCase wire form
    state: Mapped[dict[str, object]] = mapped_column(StateJSON, nullable=False)

    __table_args__ = (
        Index("ix_teams_updated_at", "updated_at"),
    )


class StorageFlag(Base):
    __tablename__ = "storage_flags"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
