from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .core.storage import StoredFile
from .db import Base

ROLES = ("admin", "teacher", "student")


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.now, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.now, server_default=func.now(), onupdate=func.now())


class StoredFileMixin:
    """Columns for a file kept in the remote store.

    The structured reference is persisted next to the URL; `file_public_id`
    is NULL only for rows written before it existed.
    """

    file_url: Mapped[str | None] = mapped_column(String(500))
    file_public_id: Mapped[str | None] = mapped_column(String(500))
    file_resource_type: Mapped[str | None] = mapped_column(String(20))
    file_delivery_type: Mapped[str | None] = mapped_column(String(20))

    def attach_file(self, stored: StoredFile) -> None:
        self.file_url = stored.url
        self.file_public_id = stored.public_id
        self.file_resource_type = stored.resource_type
        self.file_delivery_type = stored.delivery_type

    def stored_file(self) -> StoredFile | None:
        if not self.file_url:
            return None
        if self.file_public_id:
            return StoredFile(
                url=self.file_url,
                public_id=self.file_public_id,
                resource_type=self.file_resource_type or "raw",
                delivery_type=self.file_delivery_type or "upload",
            )
        return StoredFile.from_url(self.file_url)


class Batch(TimestampMixin, Base):
    __tablename__ = "batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    students: Mapped[list["User"]] = relationship(back_populates="batch")


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(Enum(*ROLES, name="user_role"), nullable=False)
    # NULL for admins and teachers
    batch_id: Mapped[int | None] = mapped_column(ForeignKey("batches.id", ondelete="RESTRICT"))
    active_session_id: Mapped[str | None] = mapped_column(String(255))

    batch: Mapped[Batch | None] = relationship(back_populates="students")

    __table_args__ = (Index("ix_users_batch", "batch_id"),)


class Course(TimestampMixin, Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    semester: Mapped[str | None] = mapped_column(String(20))


class CourseTeacher(TimestampMixin, Base):
    __tablename__ = "course_teachers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    can_grade: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("course_id", "teacher_id", name="uq_course_teacher"),)


class BatchEnrollment(TimestampMixin, Base):
    __tablename__ = "batch_enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False)

    batch: Mapped[Batch] = relationship()
    course: Mapped[Course] = relationship()

    __table_args__ = (UniqueConstraint("batch_id", "course_id", name="uq_batch_course"),)


class Folder(TimestampMixin, Base):
    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # NULL means a root folder
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("folders.id", ondelete="RESTRICT"))
    is_shared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class FolderCourse(Base):
    __tablename__ = "folder_courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    folder_id: Mapped[int] = mapped_column(ForeignKey("folders.id", ondelete="RESTRICT"), nullable=False)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False)
    added_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.now, server_default=func.now())

    __table_args__ = (UniqueConstraint("folder_id", "course_id", name="uq_folder_course"),)


class Material(StoredFileMixin, TimestampMixin, Base):
    __tablename__ = "materials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # a material hangs off a course, a folder, or both
    course_id: Mapped[int | None] = mapped_column(ForeignKey("courses.id", ondelete="RESTRICT"))
    folder_id: Mapped[int | None] = mapped_column(ForeignKey("folders.id", ondelete="RESTRICT"))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("ix_materials_course", "course_id"),
        Index("ix_materials_folder", "folder_id"),
    )


class Assignment(TimestampMixin, Base):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)

    __table_args__ = (Index("ix_assignments_course", "course_id"),)


class AssignmentMaterial(StoredFileMixin, TimestampMixin, Base):
    __tablename__ = "assignment_materials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id", ondelete="RESTRICT"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    # file = uploaded to the store, url = external link kept in file_url
    kind: Mapped[str] = mapped_column(Enum("file", "url", name="assignment_material_kind"), nullable=False)
    file_type: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text)

    def stored_file(self) -> StoredFile | None:
        if self.kind != "file":
            return None
        return super().stored_file()


class Submission(StoredFileMixin, TimestampMixin, Base):
    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(ForeignKey("assignments.id", ondelete="RESTRICT"), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    submission_text: Mapped[str | None] = mapped_column(Text)
    marks: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    feedback: Mapped[str | None] = mapped_column(Text)
    graded_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"))
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.now, server_default=func.now())

    __table_args__ = (
        Index("ix_submissions_assignment", "assignment_id"),
        Index("ix_submissions_student", "student_id"),
    )


class Grade(TimestampMixin, Base):
    __tablename__ = "grades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    grade: Mapped[str] = mapped_column(String(10), nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (UniqueConstraint("course_id", "student_id", name="uq_grade_course_student"),)
