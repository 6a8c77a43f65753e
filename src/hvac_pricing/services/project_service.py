"""
Project Service - projects and their comment threads.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..config.logging import get_logger
from ..engine.capabilities import Capability, CapabilityToken, Role
from ..engine.errors import Forbidden, InvalidInput, NotFound
from ..store.db import store_call
from ..store.tables import Comment, InquiryLogRecord, Project, utcnow

logger = get_logger(__name__)


@dataclass
class ProjectSummary:
    """Admin overview row for one project."""
    id: str
    name: str
    user_id: str
    created_at: datetime
    unread_count: int
    last_activity: datetime


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ProjectService:
    """Service for projects and comments."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        self.session = session
        self.clock = clock

    @store_call
    def create_project(self, user_id: str, name: str) -> Project:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Project name is required")
        project = Project(user_id=user_id, name=name, created_at=self.clock())
        self.session.add(project)
        self.session.commit()
        logger.info("Created project %s for user %s", project.id, user_id)
        return project

    @store_call
    def list_projects(self, user_id: str) -> list[Project]:
        """The user's own projects, newest first."""
        return list(self.session.scalars(
            select(Project).where(Project.user_id == user_id).order_by(Project.created_at.desc())
        ).all())

    @store_call
    def get_project(self, token: CapabilityToken, project_id: str) -> Project:
        """Owner or anyone with READ_ALL_PROJECTS may read a project."""
        project = self.session.get(Project, project_id)
        if project is None:
            raise NotFound(f"Project '{project_id}' not found")
        if project.user_id != token.user_id and not token.has(Capability.READ_ALL_PROJECTS):
            # Indistinguishable from a missing project
            raise NotFound(f"Project '{project_id}' not found")
        return project

    @store_call
    def add_comment(self, token: CapabilityToken, project_id: str, content: str) -> Comment:
        project = self.get_project(token, project_id)
        content = (content or "").strip()
        if not content:
            raise InvalidInput("Comment content is required")
        comment = Comment(
            project_id=project.id,
            user_id=token.user_id,
            user_full_name=token.full_name or token.user_id,
            role=token.role.value,
            content=content,
            is_read=False,
            created_at=self.clock(),
        )
        self.session.add(comment)
        self.session.commit()
        return comment

    @store_call
    def list_comments(self, token: CapabilityToken, project_id: str) -> list[Comment]:
        """Comments oldest first."""
        self.get_project(token, project_id)
        return list(self.session.scalars(
            select(Comment).where(Comment.project_id == project_id).order_by(Comment.created_at)
        ).all())

    @store_call
    def mark_comments_read(self, token: CapabilityToken, project_id: str) -> int:
        """Flip comments written by the opposite role to read. Returns how many changed."""
        self.get_project(token, project_id)
        target_role = Role.EMPLOYEE if token.role == Role.ADMIN else Role.ADMIN
        comments = self.session.scalars(
            select(Comment).where(
                Comment.project_id == project_id,
                Comment.role == target_role.value,
                Comment.is_read.is_(False),
            )
        ).all()
        for comment in comments:
            comment.is_read = True
        self.session.commit()
        return len(comments)

    @store_call
    def unread_count_for_user(self, user_id: str) -> int:
        """Unread admin comments across the user's projects."""
        return self.session.scalar(
            select(func.count(Comment.id))
            .join(Project, Project.id == Comment.project_id)
            .where(
                Project.user_id == user_id,
                Comment.role == Role.ADMIN.value,
                Comment.is_read.is_(False),
            )
        ) or 0

    @store_call
    def admin_project_summaries(self, token: CapabilityToken) -> list[ProjectSummary]:
        """
        Every project with unread employee comments and last activity.

        Last activity is the latest of project creation, last comment and
        last inquiry. Sorted most recent first.
        """
        token.require(Capability.READ_ALL_PROJECTS)
        summaries = []
        for project in self.session.scalars(select(Project)).all():
            unread = self.session.scalar(
                select(func.count(Comment.id)).where(
                    Comment.project_id == project.id,
                    Comment.role == Role.EMPLOYEE.value,
                    Comment.is_read.is_(False),
                )
            ) or 0
            last_comment = self.session.scalar(
                select(func.max(Comment.created_at)).where(Comment.project_id == project.id)
            )
            last_inquiry = self.session.scalar(
                select(func.max(InquiryLogRecord.created_at)).where(InquiryLogRecord.project_id == project.id)
            )
            candidates = [_aware(t) for t in (project.created_at, last_comment, last_inquiry) if t is not None]
            summaries.append(ProjectSummary(
                id=project.id,
                name=project.name,
                user_id=project.user_id,
                created_at=_aware(project.created_at),
                unread_count=int(unread),
                last_activity=max(candidates),
            ))
        summaries.sort(key=lambda s: s.last_activity, reverse=True)
        return summaries
