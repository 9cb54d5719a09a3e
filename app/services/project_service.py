"""Projects group a reviewer's interviews for one opening."""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.exceptions import NotFound, ValidationFailure
from app.models.interview import InterviewRecord
from app.models.project import ProjectModel
from app.models.user import UserModel, to_object_id
from app.schemas.project import BulkAssignRequest, CreateProjectRequest, UpdateProjectRequest
from app.services.interview_service import InterviewService
from app.services.notification_service import build_invitation
from app.services.scoring_service import round_div

logger = logging.getLogger(__name__)

STATUS_KEYS = (
    ("completed", "completed"),
    ("terminated", "terminated"),
    ("pending", "pending"),
    ("inProgress", "in_progress"),
)


def project_stats(interviews: List[InterviewRecord]) -> Dict[str, Any]:
    stats: Dict[str, Any] = {"total": len(interviews)}
    for key, status in STATUS_KEYS:
        stats[key] = sum(1 for i in interviews if i.status == status)
    completed = [i.score.percentage for i in interviews if i.status == "completed" and i.score]
    stats["avgScore"] = round_div(sum(completed), len(completed)) if completed else None
    return stats


class ProjectService:
    def __init__(self, db: AsyncIOMotorDatabase, interviews: InterviewService):
        self.db = db
        self.interviews = interviews

    def _project_id(self, project_id) -> ObjectId:
        oid = to_object_id(project_id)
        if oid is None:
            raise NotFound("Project not found")
        return oid

    async def _load(self, project_id, reviewer_id: ObjectId) -> ProjectModel:
        data = await self.db.projects.find_one({"_id": self._project_id(project_id), "hr": reviewer_id})
        if not data:
            raise NotFound("Project not found")
        return ProjectModel.model_validate(data)

    async def _project_interviews(self, project_id: ObjectId) -> List[InterviewRecord]:
        cursor = self.db.interviews.find({"project": project_id}).sort("createdAt", -1)
        return [InterviewRecord.model_validate(d) for d in await cursor.to_list(length=None)]

    async def create_project(self, reviewer: UserModel, request: CreateProjectRequest) -> ProjectModel:
        project = ProjectModel(
            hr=reviewer.id,
            name=request.name,
            description=request.description,
            company=request.company or reviewer.company or "",
            job_role=request.job_role,
            tech_stack=request.tech_stack,
            deadline=request.deadline,
            color=request.color,
        )
        result = await self.db.projects.insert_one(project.model_dump(by_alias=True, exclude={"id"}))
        project.id = result.inserted_id
        logger.info("Project %s created by %s", project.id, reviewer.id)
        return project

    async def list_projects(self, reviewer_id: ObjectId) -> List[Dict[str, Any]]:
        cursor = self.db.projects.find({"hr": reviewer_id}).sort("createdAt", -1)
        result = []
        for data in await cursor.to_list(length=None):
            project = ProjectModel.model_validate(data)
            entry = project.model_dump(mode="json", by_alias=True)
            entry["stats"] = project_stats(await self._project_interviews(project.id))
            result.append(entry)
        return result

    async def get_project(self, project_id, reviewer_id: ObjectId) -> Dict[str, Any]:
        project = await self._load(project_id, reviewer_id)
        interviews = await self._project_interviews(project.id)
        return {
            "project": project.model_dump(mode="json", by_alias=True),
            "interviews": [i.to_public() for i in interviews],
            "stats": project_stats(interviews),
        }

    async def update_project(self, project_id, reviewer_id: ObjectId, request: UpdateProjectRequest) -> ProjectModel:
        changes = request.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        changes["updatedAt"] = datetime.utcnow()
        result = await self.db.projects.update_one(
            {"_id": self._project_id(project_id), "hr": reviewer_id}, {"$set": changes}
        )
        if result.matched_count == 0:
            raise NotFound("Project not found")
        return await self._load(project_id, reviewer_id)

    async def delete_project(self, project_id, reviewer_id: ObjectId) -> None:
        """Delete the project; its interviews are kept and only lose the reference."""
        oid = self._project_id(project_id)
        deleted = await self.db.projects.find_one_and_delete({"_id": oid, "hr": reviewer_id})
        if not deleted:
            raise NotFound("Project not found")
        await self.db.interviews.update_many({"project": oid}, {"$unset": {"project": ""}})
        logger.info("Project %s deleted", oid)

    async def bulk_assign(self, project_id, reviewer: UserModel, request: BulkAssignRequest) -> Dict[str, Any]:
        """
        Assign one generated question set to several candidates.

        Interviews are inserted concurrently and independently: a failed
        insert is reported for that candidate and the others are kept.
        """
        project = await self._load(project_id, reviewer.id)

        candidate_ids = [to_object_id(c) for c in request.candidate_ids]
        if any(c is None for c in candidate_ids):
            raise ValidationFailure(
                "Validation failed", [{"field": "candidateIds", "message": "Invalid candidate id"}]
            )
        cursor = self.db.users.find({"_id": {"$in": candidate_ids}, "role": "candidate"})
        candidates = [UserModel.model_validate(d) for d in await cursor.to_list(length=None)]
        if len(candidates) != len(set(candidate_ids)):
            raise ValidationFailure(
                "Validation failed",
                [{"field": "candidateIds", "message": "One or more candidates not found"}],
            )

        questions = await self.interviews.generate_questions(request)
        company = reviewer.company or project.company or ""
        records = [
            self.interviews.build_record(
                reviewer.id, c.id, request, questions, company=company, project_id=project.id
            )
            for c in candidates
        ]
        results = await asyncio.gather(
            *(self.interviews.insert(r) for r in records), return_exceptions=True
        )

        created, failed, invitations = [], [], []
        for candidate, result in zip(candidates, results):
            if isinstance(result, BaseException):
                logger.error("Bulk assignment failed for candidate %s: %s", candidate.id, result)
                failed.append({"candidateId": str(candidate.id), "error": str(result)})
                continue
            created.append(result)
            if candidate.email:
                invitations.append(build_invitation(candidate, result))

        if not project.job_role:
            await self.db.projects.update_one(
                {"_id": project.id},
                {"$set": {"jobRole": request.job_role, "techStack": request.tech_stack}},
            )
        await self.interviews.notifier.send_batch(invitations)
        logger.info("Bulk assigned project %s: %d created, %d failed", project.id, len(created), len(failed))

        return {
            "interviews": [r.to_public() for r in created],
            "count": len(created),
            "failed": failed,
        }
