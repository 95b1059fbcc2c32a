"""Project, project property and project ACL tables."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from vantage.db.base import Base, TimestampMixin
from vantage.db.models.team import TeamRow

project_access_teams = Table(
    "project_access_teams",
    Base.metadata,
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True),
)


class ProjectRow(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    version: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Mirrors ``version`` with NULL folded to "" so (name, NULL) is a unique slot too
    version_key: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    classifier: Mapped[str] = mapped_column(String(50), nullable=False, default="APPLICATION")
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    authors: Mapped[list | None] = mapped_column(JSON, nullable=True)
    publisher: Mapped[str | None] = mapped_column(String(255), nullable=True)
    group: Mapped[str | None] = mapped_column("group_name", String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    cpe: Mapped[str | None] = mapped_column(String(255), nullable=True)
    purl: Mapped[str | None] = mapped_column(String(786), nullable=True)
    swid_tag_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    supplier: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    manufacturer: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    external_references: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("projects.id"), nullable=True, index=True
    )

    parent: Mapped["ProjectRow | None"] = relationship(remote_side=[id], lazy="selectin", join_depth=1)
    access_teams: Mapped[list[TeamRow]] = relationship(secondary=project_access_teams, lazy="selectin")
    properties: Mapped[list["ProjectPropertyRow"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("name", "version_key", name="uq_projects_name_version"),
        Index(
            "uq_projects_latest_name",
            "name",
            unique=True,
            sqlite_where=text("is_latest = 1"),
            postgresql_where=text("is_latest"),
        ),
    )

    @validates("version")
    def _sync_version_key(self, _key: str, value: str | None) -> str | None:
        self.version_key = value or ""
        return value

    def __repr__(self) -> str:
        return f"ProjectRow(uuid={self.uuid!r}, name={self.name!r}, version={self.version!r})"

    def __str__(self) -> str:
        return f"{self.name} : {self.version}" if self.version else self.name


class ProjectPropertyRow(Base, TimestampMixin):
    __tablename__ = "project_properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_name: Mapped[str] = mapped_column(String(255), nullable=False)
    property_name: Mapped[str] = mapped_column(String(255), nullable=False)
    property_value: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    property_type: Mapped[str] = mapped_column(String(20), nullable=False, default="STRING")
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    project: Mapped[ProjectRow] = relationship(back_populates="properties")

    __table_args__ = (
        UniqueConstraint("project_id", "group_name", "property_name", name="uq_project_properties_key"),
    )
