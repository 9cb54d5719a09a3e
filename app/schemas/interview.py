from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Optional

from app.models.interview import ConversationMessage

REQUEST_CONFIG = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class InterviewConfig(BaseModel):
    """Interview settings chosen by the reviewer; fixed once the interview exists."""
    model_config = REQUEST_CONFIG

    job_role: str = Field(..., min_length=1)
    job_description: str = Field(..., min_length=30)
    tech_stack: List[str] = Field(default_factory=list)
    mode: Literal["mcq", "virtual"]
    difficulty: Literal["easy", "medium", "hard"]
    num_questions: int = Field(..., ge=1, le=30)
    duration_minutes: int = Field(..., ge=5)
    jd_analysis: Optional[Dict[str, Any]] = None

    @field_validator("job_role", "job_description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CreateInterviewRequest(InterviewConfig):
    candidate_id: str


class AnalyzeJDRequest(BaseModel):
    model_config = REQUEST_CONFIG

    job_description: str = Field(..., min_length=30)
    job_role: Optional[str] = None


class AnswerSelection(BaseModel):
    model_config = REQUEST_CONFIG

    question_id: str
    selected_option: Optional[str] = None


class ProctorCounters(BaseModel):
    """Cumulative counters as tracked by the candidate's browser."""
    model_config = REQUEST_CONFIG

    tab_switches: Optional[int] = Field(None, ge=0)
    fullscreen_exits: Optional[int] = Field(None, ge=0)
    long_pauses: Optional[int] = Field(None, ge=0)
    camera_disconnects: Optional[int] = Field(None, ge=0)
    look_away_events: Optional[int] = Field(None, ge=0)
    avg_response_time_seconds: Optional[float] = None

    def reported(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SubmitMCQRequest(BaseModel):
    model_config = REQUEST_CONFIG

    answers: List[AnswerSelection] = Field(..., min_length=1)
    proctor_data: Optional[ProctorCounters] = None


class NextQuestionRequest(BaseModel):
    model_config = REQUEST_CONFIG

    current_question_index: int = Field(..., ge=0)


class SubmitResponseRequest(BaseModel):
    model_config = REQUEST_CONFIG

    question_id: str = Field(..., min_length=1)
    response_text: str = Field(..., min_length=5)
    conversation_history: Optional[List[ConversationMessage]] = None

    @field_validator("response_text", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CompleteVirtualRequest(BaseModel):
    model_config = REQUEST_CONFIG

    conversation_history: Optional[List[ConversationMessage]] = None
    proctor_data: Optional[ProctorCounters] = None


class TerminateRequest(BaseModel):
    model_config = REQUEST_CONFIG

    reason: Literal["look_away", "tab_switch"]
    partial_answers: List[AnswerSelection] = Field(default_factory=list)
    proctor_snapshot: Optional[ProctorCounters] = None
    conversation_history: Optional[List[ConversationMessage]] = None
