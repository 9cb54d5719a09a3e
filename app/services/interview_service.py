"""
Interview lifecycle.

    pending -> in_progress -> completed
                    \\-------> terminated   (also reachable from pending)

``completed`` and ``terminated`` are final. ``expired`` exists as a status
but nothing moves a record into it yet.

Every operation is one read-modify-write of a single interview document,
filtered by (interview id, acting user). There is no locking or version
check: concurrent writes to the same interview are last-write-wins.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.config import settings
from app.exceptions import InvalidState, NotFound, PersistenceConflict, ValidationFailure
from app.models.interview import (
    ANSWER_KEY_FIELDS,
    ConversationMessage,
    InterviewRecord,
    ProctorReport,
    Question,
)
from app.models.user import UserModel, to_object_id
from app.schemas.interview import AnswerSelection, InterviewConfig
from app.services.llm_service import TextGenerator
from app.services.notification_service import Notifier
from app.services.proctor_service import TERMINATION_SUMMARIES, ProctorMonitor, merge_proctor_report
from app.services.question_service import QuestionGenerator
from app.services.report_service import ReportGenerator, merge_ai_report
from app.services.scoring_service import ScoringEngine, ScoringResult, round_div

logger = logging.getLogger(__name__)


def _oid(value, what: str = "Interview") -> ObjectId:
    oid = to_object_id(value)
    if oid is None:
        raise NotFound(f"{what} not found")
    return oid


class InterviewService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        text_generator: TextGenerator,
        notifier: Optional[Notifier] = None,
    ):
        self.db = db
        self.scoring = ScoringEngine()
        self.reports = ReportGenerator(text_generator)
        self.proctor = ProctorMonitor(text_generator)
        self.questions = QuestionGenerator(text_generator)
        self.notifier = notifier or Notifier()

    # ── persistence helpers ──────────────────────────────────────────────

    async def _load(self, query: Dict[str, Any], what: str = "Interview") -> InterviewRecord:
        data = await self.db.interviews.find_one(query)
        if not data:
            raise NotFound(f"{what} not found")
        return InterviewRecord.model_validate(data)

    async def _load_for_candidate(self, interview_id, candidate_id) -> InterviewRecord:
        return await self._load({"_id": _oid(interview_id), "candidate": candidate_id})

    async def _load_for_reviewer(self, interview_id, reviewer_id) -> InterviewRecord:
        return await self._load({"_id": _oid(interview_id), "hr": reviewer_id})

    async def _save(self, record: InterviewRecord, owner: Dict[str, Any], *fields: str) -> None:
        update = record.dump_fields(*fields, "updated_at")
        await self.db.interviews.update_one({"_id": record.id, **owner}, {"$set": update})

    async def insert(self, record: InterviewRecord) -> InterviewRecord:
        try:
            result = await self.db.interviews.insert_one(record.to_document())
        except DuplicateKeyError as e:
            key_value = (e.details or {}).get("keyValue") or {}
            field = next(iter(key_value), "field")
            raise PersistenceConflict(f"{field} already exists") from e
        return record.model_copy(update={"id": result.inserted_id})

    async def _get_user(self, user_id, role: Optional[str] = None) -> Optional[UserModel]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        data = await self.db.users.find_one({"_id": oid})
        if not data:
            return None
        user = UserModel.model_validate(data)
        if role and user.role != role:
            return None
        return user

    def _selections(
        self, record: InterviewRecord, answers: Sequence[AnswerSelection], strict: bool = True
    ) -> Dict[str, Optional[str]]:
        known = record.question_index()
        unknown = [a.question_id for a in answers if a.question_id not in known]
        if unknown and strict:
            raise ValidationFailure(
                "Validation failed",
                [{"field": "questionId", "message": f"Unknown question {qid}"} for qid in unknown],
            )
        if unknown:
            logger.warning("Ignoring answers to unknown questions %s on interview %s", unknown, record.id)
        return {a.question_id: a.selected_option for a in answers if a.question_id in known}

    @staticmethod
    def _require_mode(record: InterviewRecord, mode: str) -> None:
        if record.mode != mode:
            raise InvalidState(f"Not a {mode} interview")

    @staticmethod
    def _require_in_progress(record: InterviewRecord) -> None:
        if record.status != "in_progress":
            raise InvalidState("Interview not in progress")

    # ── creation & queries ───────────────────────────────────────────────

    async def analyze_job_description(self, job_description: str, job_role: Optional[str] = None) -> Dict[str, Any]:
        return await self.questions.analyze_job_description(job_description, job_role)

    async def generate_questions(self, config: InterviewConfig) -> List[Question]:
        return await self.questions.generate(
            config.mode,
            config.num_questions,
            config.job_role,
            config.job_description,
            config.tech_stack,
            config.difficulty,
        )

    def build_record(
        self,
        reviewer_id: ObjectId,
        candidate_id: ObjectId,
        config: InterviewConfig,
        questions: Sequence[Question],
        company: str = "",
        project_id: Optional[ObjectId] = None,
    ) -> InterviewRecord:
        now = datetime.utcnow()
        return InterviewRecord(
            hr=reviewer_id,
            candidate=candidate_id,
            project=project_id,
            job_role=config.job_role,
            job_description=config.job_description,
            tech_stack=config.tech_stack,
            company=company,
            mode=config.mode,
            difficulty=config.difficulty,
            num_questions=config.num_questions,
            duration_minutes=config.duration_minutes,
            jd_analysis=config.jd_analysis,
            questions=tuple(questions),
            proctor_report=ProctorReport(),
            expires_at=now + timedelta(days=settings.interview_expiry_days),
            created_at=now,
            updated_at=now,
        )

    async def create_interview(self, reviewer_id: ObjectId, candidate_id: str, config: InterviewConfig) -> InterviewRecord:
        """Generate a question set and assign it to one candidate."""
        candidate = await self._get_user(candidate_id, role="candidate")
        if not candidate:
            raise NotFound("Candidate not found")
        reviewer = await self._get_user(reviewer_id)

        questions = await self.generate_questions(config)
        record = self.build_record(
            reviewer_id, candidate.id, config, questions, company=reviewer.company if reviewer else ""
        )
        record = await self.insert(record)
        logger.info("Interview %s created for candidate %s (%s)", record.id, candidate.id, record.mode)

        await self.notifier.send_invitation(candidate, record)
        return record

    async def list_reviewer_interviews(self, reviewer_id: ObjectId) -> List[InterviewRecord]:
        cursor = self.db.interviews.find({"hr": reviewer_id}).sort("createdAt", -1)
        return [InterviewRecord.model_validate(d) for d in await cursor.to_list(length=None)]

    async def list_candidate_interviews(self, candidate_id: ObjectId) -> List[Dict[str, Any]]:
        cursor = self.db.interviews.find({"candidate": candidate_id}).sort("createdAt", -1)
        return [
            InterviewRecord.model_validate(d).to_public(ANSWER_KEY_FIELDS)
            for d in await cursor.to_list(length=None)
        ]

    async def get_interview(self, interview_id, principal_id: ObjectId) -> Dict[str, Any]:
        """Full record for its reviewer; candidates see it without answer keys until it is final."""
        record = await self._load({"_id": _oid(interview_id)})
        if principal_id == record.hr:
            return record.to_public()
        if principal_id == record.candidate:
            return record.to_public(() if record.is_terminal else ANSWER_KEY_FIELDS)
        raise NotFound("Interview not found")

    async def list_candidates(self) -> List[Dict[str, Any]]:
        cursor = self.db.users.find({"role": "candidate", "isActive": True}).sort("createdAt", -1)
        result = []
        for data in await cursor.to_list(length=None):
            candidate = UserModel.model_validate(data)
            latest = await self.db.interviews.find_one(
                {"candidate": candidate.id}, sort=[("createdAt", -1)]
            )
            summary = None
            if latest:
                summary = {
                    key: latest.get(key)
                    for key in ("_id", "status", "score", "mode", "difficulty", "jobRole", "createdAt")
                }
                summary["_id"] = str(summary["_id"])
            entry = candidate.model_dump(mode="json", by_alias=True)
            entry["latestInterview"] = summary
            result.append(entry)
        return result

    async def reviewer_stats(self, reviewer_id: ObjectId) -> Dict[str, int]:
        counts = {}
        for key, status in (
            ("completed", "completed"),
            ("pending", "pending"),
            ("inProgress", "in_progress"),
            ("terminated", "terminated"),
        ):
            counts[key] = await self.db.interviews.count_documents({"hr": reviewer_id, "status": status})
        counts["total"] = await self.db.interviews.count_documents({"hr": reviewer_id})

        cursor = self.db.interviews.find({"hr": reviewer_id, "status": "completed"})
        completed = await cursor.to_list(length=None)
        percentages = [(d.get("score") or {}).get("percentage") or 0 for d in completed]
        counts["avgScore"] = round_div(sum(percentages), len(percentages))
        counts["candidateCount"] = await self.db.users.count_documents({"role": "candidate"})
        return counts

    # ── candidate lifecycle ──────────────────────────────────────────────

    async def start(self, interview_id, candidate_id: ObjectId) -> InterviewRecord:
        record = await self._load_for_candidate(interview_id, candidate_id)
        if record.status == "completed":
            raise InvalidState("Interview already completed")
        if record.status == "expired":
            raise InvalidState("Interview has expired")
        if record.status == "terminated":
            raise InvalidState("Interview was terminated")
        if record.status == "in_progress":
            return record

        now = datetime.utcnow()
        record = record.model_copy(update={"status": "in_progress", "started_at": now, "updated_at": now})
        await self._save(record, {"candidate": candidate_id}, "status", "started_at")
        logger.info("Interview %s started", record.id)
        return record

    async def submit_mcq(
        self,
        interview_id,
        candidate_id: ObjectId,
        answers: Sequence[AnswerSelection],
        proctor_data: Optional[Dict[str, Any]] = None,
    ) -> InterviewRecord:
        """Score a full mcq submission, write the report and complete the interview."""
        record = await self._load_for_candidate(interview_id, candidate_id)
        self._require_mode(record, "mcq")
        self._require_in_progress(record)

        result = self.scoring.score_mcq(record.questions, self._selections(record, answers))
        report = await self.reports.mcq_report(record, result)
        proctor_report = record.proctor_report
        if proctor_data is not None:
            assessment = await self.proctor.assess(record.duration_minutes, proctor_data, with_flags=True)
            proctor_report = merge_proctor_report(proctor_report, assessment)

        return await self._complete(record, candidate_id, result, report, proctor_report)

    async def next_virtual_question(self, interview_id, candidate_id: ObjectId, index: int) -> Dict[str, Any]:
        record = await self._load_for_candidate(interview_id, candidate_id)
        self._require_mode(record, "virtual")
        if index >= len(record.questions):
            return {"done": True}
        q = record.questions[index]
        return {
            "done": False,
            "question": {
                "_id": str(q.id),
                "questionText": q.question_text,
                "topic": q.topic,
                "questionType": q.question_type,
                "internalHint": ", ".join(q.expected_key_points),
            },
            "questionIndex": index,
            "totalQuestions": len(record.questions),
        }

    async def submit_virtual_response(
        self,
        interview_id,
        candidate_id: ObjectId,
        question_id: str,
        response_text: str,
        conversation_history: Optional[List[ConversationMessage]] = None,
    ) -> Dict[str, Any]:
        """Judge one answer and store it, replacing any earlier answer to the same question."""
        record = await self._load_for_candidate(interview_id, candidate_id)
        self._require_mode(record, "virtual")
        self._require_in_progress(record)
        question = record.get_question(question_id)
        if question is None:
            raise NotFound("Question not found")

        evaluation = await self.reports.evaluate_response(record, question, response_text)
        answer = self.scoring.virtual_answer(question, response_text, evaluation)

        answers = list(record.answers)
        previous = record.answer_index().get(str(question.id))
        if previous is None:
            answers.append(answer)
        else:
            answers[answers.index(previous)] = answer

        update = {
            "answers": answers,
            "topic_breakdown": self.scoring.virtual_topic_breakdown(answers),
            "updated_at": datetime.utcnow(),
        }
        fields = ["answers", "topic_breakdown"]
        if conversation_history:
            update["conversation_history"] = conversation_history
            fields.append("conversation_history")
        record = record.model_copy(update=update)
        await self._save(record, {"candidate": candidate_id}, *fields)
        return answer.model_dump(mode="json", by_alias=True)

    async def complete_virtual(
        self,
        interview_id,
        candidate_id: ObjectId,
        conversation_history: Optional[List[ConversationMessage]] = None,
        proctor_data: Optional[Dict[str, Any]] = None,
    ) -> InterviewRecord:
        record = await self._load_for_candidate(interview_id, candidate_id)
        self._require_mode(record, "virtual")
        self._require_in_progress(record)

        result = self.scoring.score_virtual(record.answers, record.num_questions)
        report = await self.reports.virtual_report(record, result)
        proctor_report = record.proctor_report
        if proctor_data is not None:
            assessment = await self.proctor.assess(record.duration_minutes, proctor_data)
            proctor_report = merge_proctor_report(proctor_report, assessment)
        if conversation_history:
            record = record.model_copy(update={"conversation_history": conversation_history})

        return await self._complete(record, candidate_id, result, report, proctor_report)

    async def _complete(self, record, candidate_id, result: ScoringResult, report, proctor_report) -> InterviewRecord:
        now = datetime.utcnow()
        record = record.model_copy(update={
            "answers": result.answers,
            "score": result.score,
            "topic_breakdown": result.topic_breakdown,
            "ai_report": merge_ai_report(record.ai_report, report),
            "proctor_report": proctor_report,
            "status": "completed",
            "completed_at": now,
            "updated_at": now,
        })
        await self._save(
            record, {"candidate": candidate_id},
            "answers", "score", "topic_breakdown", "ai_report", "proctor_report",
            "conversation_history", "status", "completed_at",
        )
        logger.info("Interview %s completed: %s", record.id, result.score.model_dump(by_alias=True))
        return record

    async def update_proctor(self, interview_id, candidate_id: ObjectId, counters: Dict[str, Any]) -> None:
        """Replace the stored counters with the client's latest totals."""
        result = await self.db.interviews.update_one(
            {"_id": _oid(interview_id), "candidate": candidate_id},
            {"$set": self.proctor.counter_update(counters)},
        )
        if result.matched_count == 0:
            raise NotFound("Interview not found")

    async def terminate(
        self,
        interview_id,
        candidate_id: ObjectId,
        reason: str,
        partial_answers: Sequence[AnswerSelection] = (),
        proctor_snapshot: Optional[Dict[str, Any]] = None,
        conversation_history: Optional[List[ConversationMessage]] = None,
    ) -> InterviewRecord:
        """
        End the interview after a proctoring violation and score what was answered.

        A record that is already completed or terminated is returned as is,
        so repeated termination signals are harmless.
        """
        record = await self._load_for_candidate(interview_id, candidate_id)
        if record.is_terminal:
            return record
        if record.status not in ("pending", "in_progress"):
            raise InvalidState(f"Cannot terminate a {record.status} interview")
        if reason not in TERMINATION_SUMMARIES:
            raise ValidationFailure(
                "Validation failed", [{"field": "reason", "message": "Invalid termination reason"}]
            )

        now = datetime.utcnow()
        update: Dict[str, Any] = {}
        if record.mode == "mcq":
            result = self.scoring.score_mcq(
                record.questions, self._selections(record, partial_answers, strict=False), partial=True
            )
        else:
            result = self.scoring.score_virtual(record.answers, record.num_questions, partial=True)
            if conversation_history:
                update["conversation_history"] = conversation_history

        note = TERMINATION_SUMMARIES[reason]
        update.update({
            "answers": result.answers,
            "score": result.score,
            "topic_breakdown": result.topic_breakdown,
            "proctor_report": self.proctor.termination_report(record.proctor_report, proctor_snapshot, reason, now),
            "ai_report": self.reports.termination_report(
                record.ai_report, reason, len(result.answers), record.num_questions, note
            ),
            "status": "terminated",
            "termination_reason": reason,
            "terminated_at": now,
            "completed_at": now,
            "updated_at": now,
        })
        record = record.model_copy(update=update)
        await self._save(
            record, {"candidate": candidate_id},
            "answers", "score", "topic_breakdown", "proctor_report", "ai_report",
            "conversation_history", "status", "termination_reason", "terminated_at", "completed_at",
        )
        logger.info("Interview %s terminated (%s)", record.id, reason)
        return record

    # ── reviewer narrative actions ───────────────────────────────────────

    async def generate_feedback_email(self, interview_id, reviewer_id: ObjectId) -> Dict[str, str]:
        record = await self._load_for_reviewer(interview_id, reviewer_id)
        candidate = await self._get_user(record.candidate)
        name = candidate.name if candidate and candidate.name else "Candidate"
        return await self.reports.feedback_email(name, record)

    async def regenerate_report(self, interview_id, reviewer_id: ObjectId) -> InterviewRecord:
        """Rebuild the narrative of a completed interview from its stored scores."""
        record = await self._load_for_reviewer(interview_id, reviewer_id)
        if record.status != "completed":
            raise InvalidState("Only completed interviews have a regenerable report")

        result = ScoringResult(record.answers, record.score, record.topic_breakdown)
        report = await self.reports.report_for(record, result)
        record = record.model_copy(update={
            "ai_report": merge_ai_report(record.ai_report, report),
            "updated_at": datetime.utcnow(),
        })
        await self._save(record, {"hr": reviewer_id}, "ai_report")
        logger.info("Interview %s report regenerated", record.id)
        return record
