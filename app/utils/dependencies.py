"""Request dependencies: caller identity and service construction."""
from fastapi import Depends, Header, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from typing import Literal, Optional
from app.database import get_db
from app.models.user import PyObjectId, UserModel, to_object_id
from app.services.interview_service import InterviewService
from app.services.project_service import ProjectService


class Principal(BaseModel):
    """Caller identity as asserted by the upstream auth gateway."""
    id: PyObjectId
    role: Literal["hr", "candidate"]


async def get_current_principal(
    x_principal_id: Optional[str] = Header(default=None),
    x_principal_role: Optional[str] = Header(default=None),
) -> Principal:
    """Identity headers are trusted as-is; credentials are verified before the request reaches us."""
    principal_id = to_object_id(x_principal_id)
    if principal_id is None or x_principal_role not in ("hr", "candidate"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return Principal(id=principal_id, role=x_principal_role)


def require_role(role: str):
    """Dependency factory restricting an endpoint to one role."""
    async def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized for this action"
            )
        return principal
    return checker


async def get_current_reviewer(
    principal: Principal = Depends(require_role("hr")),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> UserModel:
    """Reviewer account behind the request."""
    user_data = await db.users.find_one({"_id": principal.id})
    if user_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    user = UserModel.model_validate(user_data)
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )
    return user


def get_interview_service(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> InterviewService:
    return InterviewService(db, request.app.state.text_generator, request.app.state.notifier)


def get_project_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    interviews: InterviewService = Depends(get_interview_service)
) -> ProjectService:
    return ProjectService(db, interviews)
