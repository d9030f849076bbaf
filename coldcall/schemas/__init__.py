# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Pydantic request/response schemas."""
import re
from datetime import date
from typing import List, Optional, Union

from pydantic import BaseModel, EmailStr, Field, StrictFloat, StrictInt, field_validator, model_validator

VALID_STATUSES = ("ACTIVE", "ARCHIVED")

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# ints stay ints, floats reach the ledger so it can reject 1.5 itself
ScoreValue = Optional[Union[StrictInt, StrictFloat]]


def _normalise_email(v: str) -> str:
    return v.strip().lower()


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is not None:
        v = v.strip()
        if not TIME_RE.match(v):
            raise ValueError("time must be HH:MM (24h)")
    return v


# ── Auth ──────────────────────────────────────────────────────────────────

class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=4, max_length=256)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: Optional[str] = Field(None, max_length=50)

    @field_validator("email", mode="after")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return _normalise_email(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="after")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return _normalise_email(v)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return _normalise_email(v)


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=4, max_length=256)

    @field_validator("email", mode="after")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return _normalise_email(v)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=4, max_length=256)


class UserOut(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    created_at: Optional[str] = None


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MessageOut(BaseModel):
    ok: bool = True
    message: str


# ── Classes & students ────────────────────────────────────────────────────

class StudentIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    uni: str = Field(..., min_length=1, max_length=100)

    @field_validator("name", "uni")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name and UNI are required")
        return v


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    uni: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("name", "uni")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
            if not v:
                raise ValueError("must not be blank")
        return v


class StudentOut(BaseModel):
    id: str
    name: str
    uni: str


class StudentsAdd(BaseModel):
    students: List[StudentIn] = Field(..., min_length=1)


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    classroom: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=100)
    start_time: str
    end_time: str
    start_date: date
    end_date: date
    students: List[StudentIn] = Field(default_factory=list)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, v: str) -> str:
        return _check_time(v)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    classroom: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, min_length=1, max_length=100)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, v: Optional[str]) -> Optional[str]:
        return _check_time(v)


class ClassOut(BaseModel):
    id: str
    name: str
    classroom: str
    code: str
    start_time: str
    end_time: str
    start_date: date
    end_date: date
    schedule: str
    dates: str
    status: str
    student_count: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ClassDetail(ClassOut):
    students: List[StudentOut] = []


class ImportResult(BaseModel):
    added: int
    students: List[StudentOut]


# ── Cold calls & scores ───────────────────────────────────────────────────

class SelectionOut(BaseModel):
    id: str
    name: str
    uni: str
    cold_call_id: str
    called_at: str


class ColdCallOut(BaseModel):
    id: str
    class_id: str
    called_at: str
    score: Optional[int] = None
    notes: Optional[str] = None
    student: StudentOut


class ScoreUpdate(BaseModel):
    score: ScoreValue = Field(..., description="Integer in [-2, 2], or null to clear")


class ScoreOut(BaseModel):
    ok: bool = True
    id: str
    score: Optional[int] = None


class BatchScoreItem(BaseModel):
    cold_call_id: str = Field(..., min_length=1)
    score: ScoreValue = Field(...)


class BatchScoreRequest(BaseModel):
    updates: List[BatchScoreItem] = Field(..., min_length=1, max_length=500)


class BatchScoreResult(BaseModel):
    cold_call_id: str
    ok: bool
    score: Optional[int] = None
    error: Optional[str] = None


class BatchScoreOut(BaseModel):
    results: List[BatchScoreResult]


class StudentStatsOut(BaseModel):
    id: str
    name: str
    uni: str
    times_called: int
    cumulative_score: int
    average_score: Optional[float] = None
    last_called_at: Optional[str] = None


class ClassStatsOut(BaseModel):
    class_id: str
    class_name: str
    total_calls: int
    students: List[StudentStatsOut]


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
