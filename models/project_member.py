"""Models representing project membership relationships."""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from database import db


class ProjectRole(StrEnum):
    """Role granted to a user on a project."""

    OWNER = "OWNER"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


class ProjectMember(db.Model):
    """Join model linking projects to collaborating users."""

    __tablename__ = "project_members"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("project.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ProjectRole.VIEWER.value)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    project = db.relationship("Project", back_populates="members")
    user = db.relationship("User", back_populates="memberships", foreign_keys=[user_id])
    assigned_by = db.relationship("User", foreign_keys=[assigned_by_id])

    __table_args__ = (db.UniqueConstraint("project_id", "user_id", name="uq_project_member_user"),)

    @property
    def role_enum(self) -> ProjectRole:
        """Return the role as an enum value."""

        return ProjectRole(self.role)

    @role_enum.setter
    def role_enum(self, value: ProjectRole) -> None:
        self.role = value.value

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-ready representation of the membership."""

        user = self.user
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "role": self.role,
            "assigned_by_id": self.assigned_by_id,
            "user": {
                "id": user.id,
                "name": user.name,
                "email": user.email,
            }
            if user
            else None,
        }
