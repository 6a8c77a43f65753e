"""
Projects API - projects, comment threads and admin summaries.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..engine.capabilities import Capability, CapabilityToken
from ..services.project_service import ProjectService
from ..store.db import get_db
from .security import CapabilityChecker, require_requester

router = APIRouter(prefix="/api/projects", tags=["projects"])

require_project_reader = CapabilityChecker(Capability.READ_ALL_PROJECTS)


class ProjectCreate(BaseModel):
    name: str


class ProjectResponse(BaseModel):
    id: str
    name: str
    user_id: str
    created_at: datetime


class ProjectSummaryResponse(BaseModel):
    id: str
    name: str
    user_id: str
    created_at: datetime
    unread_count: int
    last_activity: datetime


class CommentCreate(BaseModel):
    content: str


class CommentResponse(BaseModel):
    id: str
    project_id: str
    user_id: str
    user_full_name: str
    role: str
    content: str
    is_read: bool
    created_at: datetime


def _project(p) -> ProjectResponse:
    return ProjectResponse(id=p.id, name=p.name, user_id=p.user_id, created_at=p.created_at)


def _comment(c) -> CommentResponse:
    return CommentResponse(
        id=c.id,
        project_id=c.project_id,
        user_id=c.user_id,
        user_full_name=c.user_full_name,
        role=c.role,
        content=c.content,
        is_read=c.is_read,
        created_at=c.created_at,
    )


@router.post("", response_model=ProjectResponse)
async def create_project(
    body: ProjectCreate,
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    return _project(ProjectService(db).create_project(token.user_id, body.name))


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    """The caller's projects, newest first."""
    return [_project(p) for p in ProjectService(db).list_projects(token.user_id)]


@router.get("/summaries", response_model=list[ProjectSummaryResponse])
async def project_summaries(
    token: CapabilityToken = Depends(require_project_reader),
    db: Session = Depends(get_db),
):
    """All projects with unread counts, most recently active first."""
    return [ProjectSummaryResponse(**s.__dict__) for s in ProjectService(db).admin_project_summaries(token)]


@router.get("/unread")
async def unread_count(
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    return {"unread": ProjectService(db).unread_count_for_user(token.user_id)}


@router.get("/{project_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    project_id: str,
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    """Read a thread; comments from the other role become read."""
    service = ProjectService(db)
    comments = service.list_comments(token, project_id)
    response = [_comment(c) for c in comments]
    service.mark_comments_read(token, project_id)
    return response


@router.post("/{project_id}/comments", response_model=CommentResponse)
async def add_comment(
    project_id: str,
    body: CommentCreate,
    token: CapabilityToken = Depends(require_requester),
    db: Session = Depends(get_db),
):
    return _comment(ProjectService(db).add_comment(token, project_id, body.content))
