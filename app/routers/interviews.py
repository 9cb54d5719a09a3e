"""Interview router."""
from fastapi import APIRouter, Depends, status

from app.models.interview import MCQ_KEY_FIELDS
from app.models.user import UserModel
from app.schemas.interview import (
    AnalyzeJDRequest,
    CompleteVirtualRequest,
    CreateInterviewRequest,
    NextQuestionRequest,
    ProctorCounters,
    SubmitMCQRequest,
    SubmitResponseRequest,
    TerminateRequest,
)
from app.services.interview_service import InterviewService
from app.utils.dependencies import (
    Principal,
    get_current_principal,
    get_current_reviewer,
    get_interview_service,
    require_role,
)

router = APIRouter(prefix="/api/v1/interviews", tags=["Interviews"])

require_candidate = require_role("candidate")


# ── Reviewer ─────────────────────────────────────────────────────────────────

@router.get("/hr/stats")
async def reviewer_stats(
    reviewer: UserModel = Depends(get_current_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    """Dashboard counters for the calling reviewer."""
    return {"success": True, "stats": await service.reviewer_stats(reviewer.id)}


@router.get("/hr/candidates")
async def list_candidates(
    reviewer: UserModel = Depends(get_current_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    """All active candidates with their latest interview."""
    return {"success": True, "candidates": await service.list_candidates()}


@router.get("/hr/list")
async def list_reviewer_interviews(
    reviewer: UserModel = Depends(get_current_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    interviews = await service.list_reviewer_interviews(reviewer.id)
    return {"success": True, "interviews": [i.to_public() for i in interviews]}


@router.post("/hr/analyze-jd")
async def analyze_jd(
    request: AnalyzeJDRequest,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    analysis = await service.analyze_job_description(request.job_description, request.job_role)
    return {"success": True, "analysis": analysis}


@router.post("/hr/create", status_code=status.HTTP_201_CREATED)
async def create_interview(
    request: CreateInterviewRequest,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    """Generate questions and assign the interview to a candidate."""
    interview = await service.create_interview(reviewer.id, request.candidate_id, request)
    return {"success": True, "interview": interview.to_public()}


@router.post("/hr/{interview_id}/feedback-email")
async def feedback_email(
    interview_id: str,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    email = await service.generate_feedback_email(interview_id, reviewer.id)
    return {"success": True, "email": email}


@router.post("/hr/{interview_id}/regenerate-report")
async def regenerate_report(
    interview_id: str,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: InterviewService = Depends(get_interview_service)
):
    interview = await service.regenerate_report(interview_id, reviewer.id)
    return {"success": True, "interview": interview.to_public()}


# ── Candidate ────────────────────────────────────────────────────────────────

@router.get("/candidate/list")
async def list_candidate_interviews(
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    return {"success": True, "interviews": await service.list_candidate_interviews(principal.id)}


@router.get("/{interview_id}")
async def get_interview(
    interview_id: str,
    principal: Principal = Depends(get_current_principal),
    service: InterviewService = Depends(get_interview_service)
):
    return {"success": True, "interview": await service.get_interview(interview_id, principal.id)}


@router.post("/{interview_id}/start")
async def start_interview(
    interview_id: str,
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    """Start (or resume) an interview. mcq answer keys stay hidden until submission."""
    interview = await service.start(interview_id, principal.id)
    hidden = MCQ_KEY_FIELDS if interview.mode == "mcq" else ()
    return {"success": True, "interview": interview.to_public(hidden)}


@router.post("/{interview_id}/submit-mcq")
async def submit_mcq(
    interview_id: str,
    request: SubmitMCQRequest,
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    proctor_data = request.proctor_data.reported() if request.proctor_data else None
    interview = await service.submit_mcq(interview_id, principal.id, request.answers, proctor_data)
    return {"success": True, "interview": interview.to_public()}


@router.post("/{interview_id}/virtual/next-question")
async def virtual_next_question(
    interview_id: str,
    request: NextQuestionRequest,
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    result = await service.next_virtual_question(interview_id, principal.id, request.current_question_index)
    return {"success": True, **result}


@router.post("/{interview_id}/virtual/submit-response")
async def virtual_submit_response(
    interview_id: str,
    request: SubmitResponseRequest,
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    evaluation = await service.submit_virtual_response(
        interview_id,
        principal.id,
        request.question_id,
        request.response_text,
        request.conversation_history,
    )
    return {"success": True, "evaluation": evaluation}


@router.post("/{interview_id}/virtual/complete")
async def complete_virtual(
    interview_id: str,
    request: CompleteVirtualRequest,
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    proctor_data = request.proctor_data.reported() if request.proctor_data else None
    interview = await service.complete_virtual(
        interview_id, principal.id, request.conversation_history, proctor_data
    )
    return {"success": True, "interview": interview.to_public()}


# ── Proctoring ───────────────────────────────────────────────────────────────

@router.post("/{interview_id}/proctor/update")
async def update_proctor(
    interview_id: str,
    request: ProctorCounters,
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    await service.update_proctor(interview_id, principal.id, request.reported())
    return {"success": True}


@router.post("/{interview_id}/terminate")
async def terminate_interview(
    interview_id: str,
    request: TerminateRequest,
    principal: Principal = Depends(require_candidate),
    service: InterviewService = Depends(get_interview_service)
):
    """End the interview after a proctoring violation. Safe to repeat."""
    snapshot = request.proctor_snapshot.reported() if request.proctor_snapshot else None
    interview = await service.terminate(
        interview_id,
        principal.id,
        request.reason,
        request.partial_answers,
        snapshot,
        request.conversation_history,
    )
    return {"success": True, "interview": interview.to_public()}
