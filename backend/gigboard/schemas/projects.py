"""Project Schemas — request bodies for posting, reviewing and closing projects.

Invariants:
    - ProjectCreate.title: 5-200 chars, stripped; description 20-10000 chars
    - Budgets are non-negative; min <= max is a domain guard (core/project_lifecycle.py)
    - BulkReviewRequest carries 1-50 project ids
"""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from gigboard.core.domain_types import ReviewAction


class ProjectCreate(BaseModel):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=10_000)
    skills_required: list[str] = Field(default_factory=list, max_length=30)
    budget_min: float | None = Field(None, ge=0)
    budget_max: float | None = Field(None, ge=0)
    duration: int | None = Field(None, ge=1, le=3650)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v

    @field_validator("skills_required")
    @classmethod
    def clean_skills(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s and s.strip()]


class ProjectReview(BaseModel):
    """Admin verdict; a rejection needs a reason of 10+ chars (checked in core)."""
    action: ReviewAction
    rejected_reason: str | None = Field(None, max_length=2000)


class BulkReviewRequest(ProjectReview):
    project_ids: list[UUID] = Field(min_length=1, max_length=50)


class CompletionRejection(BaseModel):
    rejection_reason: str | None = Field(None, max_length=2000)


class ApplicationCreate(BaseModel):
    proposal: str = Field(min_length=1, max_length=5000)
    cover_letter: str | None = Field(None, max_length=5000)


class RatingCreate(BaseModel):
    project_id: UUID
    rating: int = Field(ge=1, le=5)
    review: str | None = Field(None, max_length=2000)


class RatingUpdate(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    review: str | None = Field(None, max_length=2000)
