"""Identity slots held by clone jobs that have not finished yet."""

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vantage.db.base import Base, TimestampMixin


class CloneReservationRow(Base, TimestampMixin):
    __tablename__ = "clone_reservations"

    job_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("jobs.job_id", ondelete="CASCADE"), primary_key=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    version: Mapped[str | None] = mapped_column(String(255), nullable=True)
    version_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("name", "version_key", name="uq_clone_reservations_name_version"),
    )
