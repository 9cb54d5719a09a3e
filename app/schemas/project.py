"""Project schemas."""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.models.project import ProjectColor, ProjectStatus
from app.schemas.interview import REQUEST_CONFIG, InterviewConfig


class CreateProjectRequest(BaseModel):
    """Request to create a project."""
    model_config = REQUEST_CONFIG

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    company: Optional[str] = None
    job_role: Optional[str] = None
    tech_stack: List[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None
    color: ProjectColor = "cyan"


class UpdateProjectRequest(BaseModel):
    """Request to update a project. Only the fields sent are changed."""
    model_config = REQUEST_CONFIG

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    job_role: Optional[str] = None
    tech_stack: Optional[List[str]] = None
    deadline: Optional[datetime] = None
    color: Optional[ProjectColor] = None
    status: Optional[ProjectStatus] = None


class BulkAssignRequest(InterviewConfig):
    """One shared question set, one interview per listed candidate."""
    candidate_ids: List[str] = Field(..., min_length=1)
