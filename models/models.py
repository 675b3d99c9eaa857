"""
Database models for the application.
"""
import enum
import uuid
from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Enum as SAEnum,
    UniqueConstraint, PrimaryKeyConstraint, Index, CheckConstraint, select
)
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship, column_property
from sqlalchemy.sql import func
from db_config import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# --- ENUM Types ---
class UserRoleEnum(enum.Enum):
    student = "student"
    admin = "admin"

class NoteVisibilityEnum(enum.Enum):
    public = "public"
    private = "private"
    college_only = "college_only"

# Visibility tiers that may appear in the shared catalog
LISTABLE_VISIBILITIES = (NoteVisibilityEnum.public, NoteVisibilityEnum.college_only)

# --- Model Definitions ---

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    major = Column(String(100), nullable=True)
    year_of_study = Column(Integer, nullable=True)

    college_email = Column(String(255), nullable=True)
    college_domain = Column(String(255), nullable=True, index=True)
    role = Column(SAEnum(UserRoleEnum, name="user_role_enum"), nullable=False, default=UserRoleEnum.student)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    notes = relationship("Note", back_populates="uploader", foreign_keys="[Note.uploader_id]")
    downloads = relationship("NoteDownload", back_populates="user")


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(String(64), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    college_domain = Column(String(255), nullable=False, index=True)
    color = Column(String(7), nullable=False, default="#3B82F6")
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    notes = relationship("Note", back_populates="subject")

    __table_args__ = (
        UniqueConstraint("name", "college_domain", name="uq_subject_name_domain"),
    )


class NoteTag(Base):
    __tablename__ = "note_tags"

    note_id = Column(String(36), ForeignKey("notes.id", ondelete="CASCADE"), nullable=False)
    tag = Column(String(50), nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("note_id", "tag"),
        Index("idx_note_tags_tag", "tag"),
    )


class NoteDownload(Base):
    __tablename__ = "note_downloads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(String(36), ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    downloaded_at = Column(DateTime(timezone=True), server_default=func.now())

    note = relationship("Note", back_populates="downloads")
    user = relationship("User", back_populates="downloads")


class Note(Base):
    __tablename__ = "notes"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject_id = Column(String(64), ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)
    uploader_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False, unique=True)
    file_size = Column(Integer, nullable=False, default=0)
    file_type = Column(String(20), nullable=False)
    mime_type = Column(String(100), nullable=False, default="application/octet-stream")

    semester = Column(String(50), nullable=True)
    year_of_study = Column(Integer, nullable=True)
    visibility = Column(SAEnum(NoteVisibilityEnum, name="note_visibility_enum"), nullable=False, default=NoteVisibilityEnum.public)
    college_domain = Column(String(255), nullable=False, index=True)

    is_verified = Column(Boolean, nullable=False, default=False)
    is_flagged = Column(Boolean, nullable=False, default=False)
    flag_reason = Column(Text, nullable=True)
    flagged_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    flagged_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    uploader = relationship("User", back_populates="notes", foreign_keys=[uploader_id])
    subject = relationship("Subject", back_populates="notes")
    tag_rows = relationship("NoteTag", cascade="all, delete-orphan", lazy="selectin", passive_deletes=True)
    downloads = relationship("NoteDownload", back_populates="note", cascade="all, delete-orphan", passive_deletes=True)

    tags = association_proxy("tag_rows", "tag", creator=lambda tag: NoteTag(tag=tag))

    # Derived from the append-only download log
    download_count = column_property(
        select(func.count(NoteDownload.id))
        .where(NoteDownload.note_id == id)
        .correlate_except(NoteDownload)
        .scalar_subquery()
    )

    __table_args__ = (
        CheckConstraint("year_of_study IS NULL OR year_of_study > 0", name="ck_note_year_positive"),
        CheckConstraint("file_size >= 0", name="ck_note_file_size"),
        Index("idx_notes_listing", "visibility", "college_domain", "created_at"),
    )

    def set_tags(self, tags):
        """Replace the tag set, touching only the rows that change."""
        wanted = set(tags or [])
        for row in list(self.tag_rows):
            if row.tag not in wanted:
                self.tag_rows.remove(row)
        present = {row.tag for row in self.tag_rows}
        for tag in sorted(wanted - present):
            self.tag_rows.append(NoteTag(tag=tag))
