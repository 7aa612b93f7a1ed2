from __future__ import annotations
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, Literal, List
from datetime import datetime
from decimal import Decimal

Role = Literal['admin', 'teacher', 'student']

class BatchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=20)
    description: Optional[str] = None
    year: int

class BatchRead(BaseModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    year: int
    model_config = ConfigDict(from_attributes=True)

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=100)
    role: Role
    batch_code: Optional[str] = None

class UserRead(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    role: Role
    batch_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=20)
    description: Optional[str] = None
    semester: Optional[str] = None

class CourseRead(BaseModel):
    id: int
    title: str
    code: str
    description: Optional[str] = None
    semester: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class CourseTeacherCreate(BaseModel):
    teacher_id: int
    is_primary: bool = False
    can_edit: bool = True
    can_grade: bool = True

class CourseTeacherRead(BaseModel):
    id: int
    course_id: int
    teacher_id: int
    is_primary: bool
    can_edit: bool
    can_grade: bool
    model_config = ConfigDict(from_attributes=True)

class EnrollmentCreate(BaseModel):
    batch_id: int

class EnrollmentRead(BaseModel):
    id: int
    batch_id: int
    course_id: int
    model_config = ConfigDict(from_attributes=True)

class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    parent_id: Optional[int] = None

class FolderRead(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    is_shared: bool
    model_config = ConfigDict(from_attributes=True)

class FolderShare(BaseModel):
    course_id: int
    added_by: int

class FolderCourseRead(BaseModel):
    id: int
    folder_id: int
    course_id: int
    added_by: int
    model_config = ConfigDict(from_attributes=True)

class MaterialRead(BaseModel):
    id: int
    course_id: Optional[int] = None
    folder_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    file_url: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    created_by: int

class AssignmentRead(BaseModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    created_by: int
    model_config = ConfigDict(from_attributes=True)

class AssignmentMaterialRead(BaseModel):
    id: int
    assignment_id: int
    title: str
    kind: Literal['file', 'url']
    file_type: Optional[str] = None
    description: Optional[str] = None
    file_url: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class SubmissionRead(BaseModel):
    id: int
    assignment_id: int
    student_id: int
    submission_text: Optional[str] = None
    marks: Optional[Decimal] = None
    feedback: Optional[str] = None
    graded_by: Optional[int] = None
    submitted_at: datetime
    file_url: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class SubmissionGrade(BaseModel):
    marks: Decimal = Field(..., ge=0, le=100)
    feedback: Optional[str] = None
    graded_by: int

class BulkDeleteRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)
