"""Project router."""
from fastapi import APIRouter, Depends, status

from app.models.user import UserModel
from app.schemas.project import BulkAssignRequest, CreateProjectRequest, UpdateProjectRequest
from app.services.project_service import ProjectService
from app.utils.dependencies import get_current_reviewer, get_project_service

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: ProjectService = Depends(get_project_service)
):
    project = await service.create_project(reviewer, request)
    return {"success": True, "project": project.model_dump(mode="json", by_alias=True)}


@router.get("/")
async def list_projects(
    reviewer: UserModel = Depends(get_current_reviewer),
    service: ProjectService = Depends(get_project_service)
):
    """Projects of the calling reviewer with interview counts."""
    return {"success": True, "projects": await service.list_projects(reviewer.id)}


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: ProjectService = Depends(get_project_service)
):
    return {"success": True, **await service.get_project(project_id, reviewer.id)}


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    request: UpdateProjectRequest,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: ProjectService = Depends(get_project_service)
):
    project = await service.update_project(project_id, reviewer.id, request)
    return {"success": True, "project": project.model_dump(mode="json", by_alias=True)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: ProjectService = Depends(get_project_service)
):
    """Delete a project. Its interviews are kept, detached from it."""
    await service.delete_project(project_id, reviewer.id)
    return {"success": True, "message": "Project deleted"}


@router.post("/{project_id}/bulk-assign", status_code=status.HTTP_201_CREATED)
async def bulk_assign(
    project_id: str,
    request: BulkAssignRequest,
    reviewer: UserModel = Depends(get_current_reviewer),
    service: ProjectService = Depends(get_project_service)
):
    """Create one interview per candidate, all sharing a single question set."""
    result = await service.bulk_assign(project_id, reviewer, request)
    return {"success": True, **result}
