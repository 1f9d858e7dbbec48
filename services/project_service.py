"""Utilities supporting project access control and presentation."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from database import db
from models.project import Project
from models.project_member import ProjectMember, ProjectRole
from models.task import Task
from models.user import User
from services.errors import ConflictError, NotFoundError, PermissionDeniedError

ASSIGNABLE_ROLES = (ProjectRole.EDITOR, ProjectRole.VIEWER)

VIEW = "view"
EDIT = "edit"
MANAGE = "manage"


def get_project_member(project: Project | None, user: User | None) -> ProjectMember | None:
    """Return the membership linking the user to the project if present."""

    if project is None or user is None:
        return None
    for member in project.members:
        if member.user_id == user.id:
            return member
    return None


def user_project_role(user: User | None, project: Project | None) -> ProjectRole | None:
    """Return the role granted to the user for the provided project."""

    if not user or not project:
        return None
    if project.owner_id == user.id:
        return ProjectRole.OWNER
    member = get_project_member(project, user)
    if member is None:
        return None
    return member.role_enum


def user_can_view_project(user: User | None, project: Project | None) -> bool:
    """True when the user is the owner or any kind of member."""
    return user_project_role(user, project) is not None


def user_can_edit_project(user: User | None, project: Project | None) -> bool:
    """True when the user can edit the project and create, move or delete its tasks."""
    return user_project_role(user, project) in (ProjectRole.OWNER, ProjectRole.EDITOR)


def user_owns_project(user: User | None, project: Project | None) -> bool:
    """Return True if the project belongs to the supplied user."""
    return bool(user and project and project.owner_id == user.id)


_CAPABILITY_CHECKS = {
    VIEW: user_can_view_project,
    EDIT: user_can_edit_project,
    MANAGE: user_owns_project,
}


def require_project(project_id: int, user: User | None, capability: str = VIEW) -> Project:
    """Load a project and check the acting user's capability on it.

    Raises NotFoundError when the project does not exist and
    PermissionDeniedError when the user lacks the capability.
    """
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found.")
    if not _CAPABILITY_CHECKS[capability](user, project):
        raise PermissionDeniedError()
    return project


def get_user_projects(user: User | None) -> list[Project]:
    """Return all projects visible to the user, most recently updated first."""

    if user is None:
        return []

    projects: list[Project] = list(user.owned_projects)
    projects.extend(member.project for member in user.memberships if member.project is not None)
    seen: set[int] = set()
    unique_projects: list[Project] = []
    for project in projects:
        if project.id in seen:
            continue
        seen.add(project.id)
        unique_projects.append(project)
    unique_projects.sort(key=lambda item: (item.updated_at or datetime.min, item.id), reverse=True)
    return unique_projects


def create_project(owner: User, title: str, description: str | None = None) -> Project:
    """Create a project with an OWNER membership for its creator."""

    project = Project(title=title, description=description, owner_id=owner.id)
    project.members.append(
        ProjectMember(user_id=owner.id, role=ProjectRole.OWNER.value, assigned_by_id=owner.id)
    )
    db.session.add(project)
    return project


def update_project(project: Project, *, title: str | None = None, description: str | None = None) -> Project:
    if title is not None:
        project.title = title
    if description is not None:
        project.description = description
    project.updated_at = datetime.utcnow()
    return project


def add_member(project: Project, email: str, role: str, assigned_by: User) -> ProjectMember:
    """Add the user registered with ``email`` to the project."""

    user = User.query.filter_by(email=email).first()
    if user is None:
        raise NotFoundError("User not found.")
    if get_project_member(project, user) is not None or project.owner_id == user.id:
        raise ConflictError("User is already a member.")
    member = ProjectMember(
        user_id=user.id,
        role=ProjectRole(role).value,
        assigned_by_id=assigned_by.id,
    )
    project.members.append(member)
    return member


def _get_member_or_404(project: Project, member_id: int) -> ProjectMember:
    for member in project.members:
        if member.id == member_id:
            return member
    raise NotFoundError("Member not found.")


def update_member_role(project: Project, member_id: int, role: str) -> ProjectMember:
    member = _get_member_or_404(project, member_id)
    if member.role_enum == ProjectRole.OWNER:
        raise ConflictError("The project owner role cannot be changed.")
    member.role_enum = ProjectRole(role)
    return member


def remove_member(project: Project, member_id: int) -> ProjectMember:
    """Remove a member and clear the assignee on their tasks in this project."""

    member = _get_member_or_404(project, member_id)
    if member.role_enum == ProjectRole.OWNER:
        raise ConflictError("The project owner cannot be removed.")
    Task.query.filter_by(project_id=project.id, assignee_id=member.user_id).update(
        {Task.assignee_id: None}, synchronize_session="fetch"
    )
    # delete-orphan cascade removes the row on flush
    project.members.remove(member)
    return member


def serialize_project(project: Project, current_user: User | None = None) -> dict[str, Any]:
    """Serialize a project for API responses."""

    owner = project.owner
    role = user_project_role(current_user, project)
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description or "",
        "owner": {"id": owner.id, "name": owner.name, "email": owner.email} if owner else None,
        "members": [member.to_dict() for member in project.members],
        "task_count": len(project.tasks),
        "role": role.value if role else None,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }
