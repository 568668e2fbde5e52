"""
Recordbook Backend: Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the JSON contract of the /api endpoints.
How:   Response models are used as FastAPI `response_model`s; the request
       model is validated explicitly by RecordStore so validation failures
       become 400 responses with `required` / `received` details instead of
       FastAPI's automatic 422.

Field naming:
    Python attributes are snake_case; the wire format keeps the camelCase
    names the frontend already reads (hasDB, byDepartment, byGrade) through
    field aliases (populate_by_name keeps construction by attribute name).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

# Text form SQLite stores for CURRENT_TIMESTAMP
STORE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RecordCreate(BaseModel):
    """
    Body of POST /api/records.

    Every field must be a non-empty string. The allowed grade values are
    checked separately so that an unknown grade gets its own error message.
    """
    date: str = Field(min_length=1, description="Date of the entry, caller-defined format")
    grade: str = Field(min_length=1, description="高一 or 高二")
    department: str = Field(min_length=1, description="Department name")
    content: str = Field(min_length=1, description="Free text")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class RecordResponse(BaseModel):
    """A stored record as returned by GET /api/records."""
    id: int
    date: str
    grade: Optional[str] = Field(default=None, description="Null for legacy rows")
    department: str
    content: str
    created_at: datetime = Field(
        description="Assigned by the store on insert, YYYY-MM-DD HH:MM:SS"
    )

    model_config = {"from_attributes": True}

    @field_serializer("created_at", when_used="json")
    def serialize_created_at(self, value: datetime) -> str:
        return value.strftime(STORE_TIMESTAMP_FORMAT)


class RecordListResponse(BaseModel):
    """All records, newest first."""
    records: List[RecordResponse]
    count: int


class CreateRecordResponse(BaseModel):
    success: bool = True
    id: int = Field(description="Id assigned by the store")


class DeleteRecordResponse(BaseModel):
    success: bool = True


class InitResponse(BaseModel):
    success: bool = True
    message: str


class DepartmentCount(BaseModel):
    department: str
    count: int


class GradeCount(BaseModel):
    grade: str
    count: int


class StatsResponse(BaseModel):
    """
    Aggregate snapshot returned by GET /api/stats.

    total:         number of rows
    today:         rows whose `date` equals today's date (YYYY-MM-DD, UTC)
    by_department: counts grouped by department
    by_grade:      counts grouped by grade, NULL grades excluded
    """
    total: int = 0
    today: int = 0
    by_department: List[DepartmentCount] = Field(
        default_factory=list, alias="byDepartment"
    )
    by_grade: List[GradeCount] = Field(
        default_factory=list, alias="byGrade"
    )

    model_config = {"populate_by_name": True}


class HealthResponse(BaseModel):
    """
    Returned by GET /api/health.

    env lists the collaborators bound to this process (ASSETS, DB).
    """
    status: str = Field(default="ok")
    time: str = Field(description="UTC ISO 8601 timestamp with milliseconds")
    has_db: bool = Field(alias="hasDB")
    env: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """
    Shape of 500 responses, for the OpenAPI docs.

    Validation failures (400) replace `stack` with `required` / `received`.
    """
    error: str = Field(description="Error message")
    stack: Optional[str] = Field(default=None, description="Formatted traceback")
    type: Optional[str] = Field(default=None, description="DATABASE_ERROR on list failures")
