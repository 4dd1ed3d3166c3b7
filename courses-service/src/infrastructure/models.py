# src/infrastructure/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Integer,
    String,
    TIMESTAMP,
    Text,
    UniqueConstraint,
    Index,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _empty_text() -> dict:
    return {"primary": "", "secondary": ""}


class CourseORM(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # двуязычные поля храним как {"primary": ..., "secondary": ...}
    title: Mapped[dict] = mapped_column(JSON, nullable=False)
    description: Mapped[dict] = mapped_column(JSON, nullable=False, default=_empty_text)
    current_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active", index=True)
    thumbnail_key: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_modified_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=datetime.utcnow
    )
    archived_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    versions: Mapped[list["CourseVersionORM"]] = relationship(
        "CourseVersionORM",
        back_populates="course",
        order_by="CourseVersionORM.version_number",
    )
    enrollments: Mapped[list["EnrollmentORM"]] = relationship(
        "EnrollmentORM",
        back_populates="course",
    )

    def __repr__(self) -> str:
        return f"CourseORM(id={self.id!r}, current_version={self.current_version!r})"


class CourseVersionORM(Base):
    __tablename__ = "course_versions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), nullable=False, index=True)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    # манифест версии: упорядоченные id строк контента
    video_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    material_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    change_log: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=datetime.utcnow
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")

    total_videos: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_materials: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    course: Mapped["CourseORM"] = relationship("CourseORM", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("course_id", "version_number", name="uq_course_version_number"),
    )

    def __repr__(self) -> str:
        return f"CourseVersionORM(course_id={self.course_id!r}, version_number={self.version_number!r})"


class EnrollmentORM(Base):
    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)  # берём из JWT sub
    version_enrolled: Mapped[int] = mapped_column(Integer, nullable=False)
    granted_by: Mapped[str] = mapped_column(String(32), nullable=False, default="payment")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    enrolled_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=datetime.utcnow
    )

    course: Mapped["CourseORM"] = relationship("CourseORM", back_populates="enrollments")

    __table_args__ = (UniqueConstraint("course_id", "user_id", name="uq_course_user"),)


class ContentItemMixin:
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id"), nullable=False)
    course_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    blob_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    title: Mapped[dict] = mapped_column(JSON, nullable=False)
    description: Mapped[dict] = mapped_column(JSON, nullable=False, default=_empty_text)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="active")
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mime_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    original_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    uploaded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), default=datetime.utcnow
    )


class VideoORM(ContentItemMixin, Base):
    __tablename__ = "videos"

    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds
    is_free_preview: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("ix_videos_course_version", "course_id", "course_version"),)

    def __repr__(self) -> str:
        return f"VideoORM(id={self.id!r}, course_id={self.course_id!r}, course_version={self.course_version!r})"


class MaterialORM(ContentItemMixin, Base):
    __tablename__ = "materials"

    __table_args__ = (Index("ix_materials_course_version", "course_id", "course_version"),)

    def __repr__(self) -> str:
        return f"MaterialORM(id={self.id!r}, course_id={self.course_id!r}, course_version={self.course_version!r})"


__all__ = [
    "Base",
    "CourseORM",
    "CourseVersionORM",
    "EnrollmentORM",
    "VideoORM",
    "MaterialORM",
]
