"""A Project is the board that groups Tasks.

A User can create multiple Projects
A User is the owner of the Project he creates
An owner can add other Users as members with the EDITOR or VIEWER role
A member can view all the Tasks of the Project
Owners and editors can create, edit, reorder and delete Tasks
Only the owner can delete the Project or manage its members

"""
from datetime import datetime

from database import db


class Project(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    tasks = db.relationship("Task", backref="project", lazy=True, cascade="all, delete-orphan")
    members = db.relationship(
        "ProjectMember",
        back_populates="project",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Project {self.title}>"
