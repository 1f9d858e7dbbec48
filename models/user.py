""" Represents a user in the system.

Users register with an email address and a password.
A User logs in to get a session and manage Projects and Tasks.
A User owns the Projects he creates (see Project)
A User can be a member of Projects owned by other Users (see ProjectMember)
A User can be assigned Tasks of the Projects he is a member of

"""
from datetime import datetime

from werkzeug.security import generate_password_hash, check_password_hash
from database import db


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(80), nullable=False)
    password_hash = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    owned_projects = db.relationship("Project", backref="owner", lazy=True)
    memberships = db.relationship(
        "ProjectMember",
        back_populates="user",
        lazy="selectin",
        cascade="all, delete-orphan",
        foreign_keys="ProjectMember.user_id",
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict[str, str | int | None]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}>"
