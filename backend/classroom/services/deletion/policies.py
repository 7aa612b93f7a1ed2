"""
Delete policy per entity.

A guard relationship blocks deletion while any child row references the
parent. A cascade relationship is deleted together with the parent, after
the remote files of its rows have been cleaned up.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from classroom.models import (
    Assignment,
    AssignmentMaterial,
    Batch,
    BatchEnrollment,
    Course,
    CourseTeacher,
    Folder,
    FolderCourse,
    Grade,
    Material,
    Submission,
    User,
)


@dataclass(frozen=True)
class Relation:
    label: str
    model: Any
    column: str
    # child rows carry a stored file that must be cleaned up
    has_files: bool = False

    @property
    def fk(self):
        return getattr(self.model, self.column)


@dataclass(frozen=True)
class Policy:
    entity: str
    model: Any
    guards: tuple[Relation, ...] = ()
    cascades: tuple[Relation, ...] = ()
    # the record itself carries a stored file
    has_file: bool = False


POLICIES: dict[str, Policy] = {
    "batch": Policy(
        "batch",
        Batch,
        guards=(
            Relation("batch enrollment(s)", BatchEnrollment, "batch_id"),
            Relation("student(s)", User, "batch_id"),
        ),
    ),
    "course": Policy(
        "course",
        Course,
        guards=(
            Relation("assignment(s)", Assignment, "course_id"),
            Relation("material(s)", Material, "course_id"),
            Relation("batch enrollment(s)", BatchEnrollment, "course_id"),
            Relation("teacher(s)", CourseTeacher, "course_id"),
            Relation("shared folder(s)", FolderCourse, "course_id"),
            Relation("grade(s)", Grade, "course_id"),
        ),
    ),
    "assignment": Policy(
        "assignment",
        Assignment,
        guards=(Relation("submission(s)", Submission, "assignment_id"),),
        cascades=(Relation("assignment material(s)", AssignmentMaterial, "assignment_id", has_files=True),),
    ),
    "folder": Policy(
        "folder",
        Folder,
        guards=(Relation("subfolder(s)", Folder, "parent_id"),),
        cascades=(
            Relation("material(s)", Material, "folder_id", has_files=True),
            Relation("course share(s)", FolderCourse, "folder_id"),
        ),
    ),
    "material": Policy("material", Material, has_file=True),
    "assignment_material": Policy("assignment_material", AssignmentMaterial, has_file=True),
    "submission": Policy("submission", Submission, has_file=True),
    "user": Policy(
        "user",
        User,
        guards=(
            Relation("course assignment(s) as teacher", CourseTeacher, "teacher_id"),
            Relation("created assignment(s)", Assignment, "created_by"),
            Relation("submission(s)", Submission, "student_id"),
            Relation("graded submission(s)", Submission, "graded_by"),
            Relation("grade(s)", Grade, "student_id"),
            Relation("shared folder(s)", FolderCourse, "added_by"),
        ),
    ),
    "enrollment": Policy("enrollment", BatchEnrollment),
    "course_teacher": Policy("course_teacher", CourseTeacher),
    "folder_course": Policy("folder_course", FolderCourse),
    "grade": Policy("grade", Grade),
}
