"""Interview record models."""
from pydantic import BaseModel, Field, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, Type, TypeVar, Union
from datetime import datetime
from bson import ObjectId
from app.models.user import PyObjectId, DOCUMENT_CONFIG

Mode = Literal["mcq", "virtual"]
Difficulty = Literal["easy", "medium", "hard"]
InterviewStatus = Literal["pending", "in_progress", "completed", "expired", "terminated"]
TerminationReason = Literal["look_away", "tab_switch"]

TERMINAL_STATUSES = ("completed", "terminated")
DEFAULT_TOPIC = "General"

# Question fields hidden from candidates.
ANSWER_KEY_FIELDS = ("correctAnswer", "explanation", "expectedKeyPoints")
MCQ_KEY_FIELDS = ("correctAnswer", "explanation")

M = TypeVar("M", bound=BaseModel)


def validate_lenient(model: Type[M], data: Mapping[str, Any]) -> M:
    """
    Validate ``data`` against ``model``, dropping top-level fields whose
    values do not fit instead of failing on them.

    Model output is trusted for shape, not for types: a mistyped section is
    left unset. Missing required fields still raise ``ValidationError``.
    """
    data = dict(data)
    while True:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err["loc"]}
            rejected = [key for key in data if key in bad or to_camel(key) in bad]
            if not rejected:
                raise
            for key in rejected:
                data.pop(key)


class McqOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    A: str = ""
    B: str = ""
    C: str = ""
    D: str = ""


class Question(BaseModel):
    """A generated question. Created once with the interview and never edited."""

    model_config = ConfigDict(**DOCUMENT_CONFIG, frozen=True, extra="ignore")

    id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    question_text: str
    topic: str = DEFAULT_TOPIC
    difficulty: Optional[str] = None

    # mcq
    options: Optional[McqOptions] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None

    # virtual
    expected_key_points: List[str] = Field(default_factory=list)
    follow_up_hints: List[str] = Field(default_factory=list)
    question_type: Optional[str] = None

    @field_validator("topic", mode="before")
    @classmethod
    def default_topic(cls, v):
        return v or DEFAULT_TOPIC


class McqAnswer(BaseModel):
    """Selected option for one mcq question."""

    model_config = ConfigDict(**DOCUMENT_CONFIG)

    question_id: PyObjectId
    question_text: str = ""
    topic: str = DEFAULT_TOPIC
    selected_option: Optional[str]
    is_correct: bool


class VirtualAnswer(BaseModel):
    """Free-text response plus the judge's rubric scores."""

    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="ignore")

    question_id: PyObjectId
    question_text: str = ""
    topic: str = DEFAULT_TOPIC
    response_text: str
    score: int = Field(0, ge=0, le=100)
    max_score: int = 100
    technical_accuracy: Optional[int] = None  # 0-40
    depth_score: Optional[int] = None         # 0-30
    clarity_score: Optional[int] = None       # 0-20
    practical_score: Optional[int] = None     # 0-10
    verdict: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    ideal_answer_summary: Optional[str] = None


Answer = Union[McqAnswer, VirtualAnswer]


class McqScore(BaseModel):
    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="forbid")

    correct: int
    total: int
    percentage: int
    is_partial: bool = False


class VirtualScore(BaseModel):
    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="forbid")

    total_raw: int
    max_possible: int
    percentage: int
    is_partial: bool = False


Score = Union[McqScore, VirtualScore]
SCORE_TYPES = {"mcq": McqScore, "virtual": VirtualScore}


class TopicStat(BaseModel):
    model_config = ConfigDict(**DOCUMENT_CONFIG)

    topic: str
    correct: int
    total: int
    percentage: int


class AiReport(BaseModel):
    """Narrative report. Only the listed sections are kept."""

    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="ignore")

    overall_summary: Optional[str] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None
    hiring_recommendation: Optional[str] = None
    hiring_rationale: Optional[str] = None
    executive_summary: Optional[str] = None
    technical_competency: Optional[str] = None
    soft_skills_assessment: Optional[str] = None
    areas_for_improvement: Optional[List[str]] = None
    overall_rating: Optional[str] = None
    suggested_next_steps: Optional[List[str]] = None
    candidate_feedback: Optional[str] = None
    hr_notes: Optional[str] = None
    termination_note: Optional[str] = None


class ProctorFlag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = ""
    severity: str = ""
    detail: str = ""


class ProctorReport(BaseModel):
    """Integrity counters reported by the client plus the assessment built on them."""

    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="ignore")

    tab_switches: int = 0
    fullscreen_exits: int = 0
    long_pauses: int = 0
    camera_disconnects: int = 0
    look_away_events: int = 0
    avg_response_time_seconds: Optional[float] = None
    integrity_score: Optional[Union[int, float]] = None
    risk_level: Optional[str] = None
    flags: List[ProctorFlag] = Field(default_factory=list)
    behavior_summary: Optional[str] = None
    recommendation: Optional[str] = None
    terminated_by: Optional[TerminationReason] = None
    terminated_at: Optional[datetime] = None


class ConversationMessage(BaseModel):
    model_config = ConfigDict(**DOCUMENT_CONFIG)

    role: Literal["ai", "candidate"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class InterviewRecord(BaseModel):
    """An interview assigned to one candidate, from creation to final report."""

    model_config = ConfigDict(**DOCUMENT_CONFIG, extra="ignore")

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    hr: PyObjectId
    candidate: PyObjectId
    project: Optional[PyObjectId] = None

    # Configuration
    job_role: str
    job_description: str
    tech_stack: List[str] = Field(default_factory=list)
    company: str = ""
    mode: Mode
    difficulty: Difficulty
    num_questions: int
    duration_minutes: int
    jd_analysis: Optional[Dict[str, Any]] = None

    status: InterviewStatus = "pending"
    termination_reason: Optional[TerminationReason] = None

    questions: Tuple[Question, ...] = ()
    answers: List[Answer] = Field(default_factory=list)
    conversation_history: List[ConversationMessage] = Field(default_factory=list)

    score: Optional[Score] = None
    topic_breakdown: List[TopicStat] = Field(default_factory=list)
    ai_report: Optional[AiReport] = None
    proctor_report: Optional[ProctorReport] = None

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    terminated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def check_mode_shapes(self):
        expected = SCORE_TYPES[self.mode]
        if self.score is not None and not isinstance(self.score, expected):
            raise ValueError(f"{self.mode} interview cannot hold a {type(self.score).__name__}")
        answer_type = McqAnswer if self.mode == "mcq" else VirtualAnswer
        for answer in self.answers:
            if not isinstance(answer, answer_type):
                raise ValueError(f"{self.mode} interview cannot hold a {type(answer).__name__}")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def question_index(self) -> Dict[str, Question]:
        return {str(q.id): q for q in self.questions}

    def answer_index(self) -> Dict[str, Answer]:
        return {str(a.question_id): a for a in self.answers}

    def get_question(self, question_id) -> Optional[Question]:
        return self.question_index().get(str(question_id))

    def dump_fields(self, *fields: str) -> Dict[str, Any]:
        """Stored (camelCase) form of the named attributes, ready for ``$set``."""
        data = self.model_dump(by_alias=True, include=set(fields))
        if "questions" in data:
            data["questions"] = list(data["questions"])
        return data

    def to_document(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude={"id"})
        data["questions"] = list(data["questions"])
        return data

    def to_public(self, hidden_question_fields: Tuple[str, ...] = ()) -> Dict[str, Any]:
        """JSON-safe representation returned to API callers."""
        data = self.model_dump(mode="json", by_alias=True)
        for question in data["questions"]:
            for key in hidden_question_fields:
                question.pop(key, None)
        return data
