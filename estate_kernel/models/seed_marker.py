"""
Module: estate_kernel.models.seed_marker
Responsibility: Persisted markers for one-time data migrations. A migration
    runs only when its marker row is absent and inserts the marker in the
    same transaction as its data.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import Base, UUIDString


class SeedMarker(Base):
    __tablename__ = "seed_markers"

    __table_args__ = (UniqueConstraint("name", name="uq_seed_marker_name"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(nullable=False)
    applied_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    # Config checksum in force when the migration ran
    config_checksum: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<SeedMarker {self.name}>"
