"""
Pydantic schemas for assignment result endpoints.
"""
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field, computed_field

from ieltsmock.core.results import ModuleStatus
from ieltsmock.core.scoring.bands import get_band_description
from ieltsmock.models import AssignmentStatus, ModuleType


class ResultResponse(BaseModel):
    """Schema for an assignment's materialized result."""

    assignment_id: int = Field(..., description="Assignment ID")
    listening_band: Optional[float] = Field(None, description="Listening band")
    reading_band: Optional[float] = Field(None, description="Reading band")
    writing_band: Optional[float] = Field(None, description="Writing band")
    speaking_band: Optional[float] = Field(None, description="Speaking band")
    overall_band: float = Field(..., description="Average of graded module bands")
    is_final: bool = Field(
        ..., description="Whether every required module has been graded"
    )
    generated_at: datetime = Field(..., description="When the result was computed")

    class Config:
        """Pydantic configuration."""

        from_attributes = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_description(self) -> str:
        """IELTS user descriptor for the overall band."""
        if not self.is_graded:
            return get_band_description(None)
        return get_band_description(self.overall_band)

    @property
    def is_graded(self) -> bool:
        return any(
            band is not None
            for band in (
                self.listening_band,
                self.reading_band,
                self.writing_band,
                self.speaking_band,
            )
        )


class AssignmentProgressResponse(BaseModel):
    """Schema for the per-module progress of an assignment."""

    assignment_id: int = Field(..., description="Assignment ID")
    status: AssignmentStatus = Field(..., description="Overall assignment status")
    modules: Dict[ModuleType, ModuleStatus] = Field(
        ..., description="Status of each required module"
    )
