"""Project models: a reviewer's grouping of interviews for one opening."""
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional, Literal
from datetime import datetime
from app.models.user import PyObjectId, DOCUMENT_CONFIG

ProjectStatus = Literal["active", "closed", "archived"]
ProjectColor = Literal["cyan", "green", "amber", "purple", "red"]


class ProjectModel(BaseModel):
    """Project database model."""
    
    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="ignore")
    
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    hr: PyObjectId
    name: str
    description: Optional[str] = None
    company: str = ""
    
    # Filled from the first bulk assignment when left empty
    job_role: Optional[str] = None
    tech_stack: List[str] = Field(default_factory=list)
    
    status: ProjectStatus = "active"
    deadline: Optional[datetime] = None
    color: ProjectColor = "cyan"
    
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
