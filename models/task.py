"""A task represents a card on a project board

A Task belongs to exactly one Project and never moves to another one
A Task sits in one column of the board: TODO, IN_PROGRESS or DONE
Within a column Tasks are sorted by their order value (ties broken by id)
A Task is placed at the end of its column when created
Reordering a Task changes only its column and its order, not its updated_at
Deleting a Task leaves the order of the remaining Tasks untouched

"""
from __future__ import annotations
from datetime import datetime
from enum import StrEnum
from typing import Optional

import bleach
from database import db
from markdown import markdown as render_markdown
from markupsafe import Markup


class TaskStatus(StrEnum):
    """Board column a task belongs to."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class TaskPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def render_task_description_html(description: Optional[str]) -> Markup:
    """Render task description Markdown into sanitized HTML."""
    if not description:
        return Markup("")
    html = render_markdown(
        description,
        extensions=["extra", "sane_lists", "codehilite"],
        output_format="html5",
        tab_length=2,
    )
    allowed_tags = list(bleach.sanitizer.ALLOWED_TAGS) + [
        "p",
        "pre",
        "code",
        "ul",
        "ol",
        "li",
        "table",
        "thead",
        "tbody",
        "tr",
        "th",
        "td",
        "div",
        "span",
        "blockquote",
        "br",
        "h1",
        "h2",
        "h3",
        "h4",
        "hr",
    ]
    allowed_attributes = {
        **bleach.sanitizer.ALLOWED_ATTRIBUTES,
        "a": ["href", "title", "target", "rel"],
        "code": ["class"],
    }
    sanitized_html = bleach.clean(html, tags=allowed_tags, attributes=allowed_attributes)
    return Markup(sanitized_html)


class Task(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("project.id"), nullable=False, index=True)
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=TaskStatus.TODO.value)
    priority = db.Column(db.String(20), nullable=False, default=TaskPriority.MEDIUM.value)
    # "order" is quoted by SQLAlchemy since it is a reserved word
    order = db.Column("order", db.Float, nullable=False, default=0.0)
    assignee_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    # No onupdate: reorders keep the previous value, edits call touch()
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    assignee = db.relationship("User", foreign_keys=[assignee_id])

    __table_args__ = (db.Index("ix_task_partition", "project_id", "status", "order"),)

    @property
    def status_enum(self) -> TaskStatus:
        return TaskStatus(self.status)

    @status_enum.setter
    def status_enum(self, value: TaskStatus) -> None:
        self.status = value.value

    @property
    def description_html(self):
        return render_task_description_html(self.description)

    def touch(self, when: datetime | None = None) -> None:
        self.updated_at = when or datetime.utcnow()

    def __repr__(self):
        return f"<Task {self.title}>"
