"""Project management blueprint."""
from __future__ import annotations

import logging

from flask import Blueprint, g, jsonify
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import MemberForm, MemberRoleForm, ProjectForm, ProjectUpdateForm
from routes import bind_json_form, json_error, json_payload, require_csrf
from services.project_service import (
    EDIT,
    MANAGE,
    VIEW,
    add_member,
    create_project,
    get_user_projects,
    remove_member,
    require_project,
    serialize_project,
    update_member_role,
    update_project,
)

projects_bp = Blueprint("projects", __name__, url_prefix="/api/projects")


def _commit_or_error(action: str):
    """Commit the session; return an error response when the commit fails."""
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while trying to %s", action, exc_info=True)
        return json_error("An internal error has occurred.", status=500)
    return None


@projects_bp.route("", methods=["GET"])
def list_projects():
    """Return every project the current user owns or is a member of."""
    projects = get_user_projects(g.user)
    return jsonify({"success": True, "projects": [serialize_project(project, g.user) for project in projects]})


@projects_bp.route("", methods=["POST"])
def create_project_view():
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(ProjectForm, payload)
    project = create_project(g.user, form.title.data.strip(), form.description.data or None)
    error = _commit_or_error("create a project")
    if error:
        return error
    return jsonify({"success": True, "project": serialize_project(project, g.user)}), 201


@projects_bp.route("/<int:project_id>", methods=["GET"])
def get_project(project_id: int):
    project = require_project(project_id, g.user, VIEW)
    return jsonify({"success": True, "project": serialize_project(project, g.user)})


@projects_bp.route("/<int:project_id>", methods=["PATCH"])
def edit_project(project_id: int):
    project = require_project(project_id, g.user, EDIT)
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(ProjectUpdateForm, payload)
    update_project(
        project,
        title=form.title.data.strip() if form.title.data else None,
        description=form.description.data if "description" in payload else None,
    )
    error = _commit_or_error("update a project")
    if error:
        return error
    return jsonify({"success": True, "project": serialize_project(project, g.user)})


@projects_bp.route("/<int:project_id>", methods=["DELETE"])
def delete_project(project_id: int):
    project = require_project(project_id, g.user, MANAGE)
    require_csrf(json_payload())
    title = project.title
    db.session.delete(project)
    error = _commit_or_error("delete a project")
    if error:
        return error
    return jsonify({"success": True, "message": f'Project "{title}" deleted!'})


@projects_bp.route("/<int:project_id>/check-access", methods=["GET"])
def check_access(project_id: int):
    """Answer 204 when the current user can view the project."""
    require_project(project_id, g.user, VIEW)
    return "", 204


@projects_bp.route("/<int:project_id>/members", methods=["GET"])
def list_members(project_id: int):
    project = require_project(project_id, g.user, MANAGE)
    return jsonify({"success": True, "members": [member.to_dict() for member in project.members]})


@projects_bp.route("/<int:project_id>/members", methods=["POST"])
def add_member_view(project_id: int):
    project = require_project(project_id, g.user, MANAGE)
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(MemberForm, payload)
    member = add_member(project, form.email.data.strip(), form.role.data, g.user)
    error = _commit_or_error("add a project member")
    if error:
        return error
    return jsonify({"success": True, "member": member.to_dict()}), 201


@projects_bp.route("/<int:project_id>/members/<int:member_id>", methods=["PATCH"])
def update_member_view(project_id: int, member_id: int):
    project = require_project(project_id, g.user, MANAGE)
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(MemberRoleForm, payload)
    member = update_member_role(project, member_id, form.role.data)
    error = _commit_or_error("update a project member")
    if error:
        return error
    return jsonify({"success": True, "member": member.to_dict()})


@projects_bp.route("/<int:project_id>/members/<int:member_id>", methods=["DELETE"])
def remove_member_view(project_id: int, member_id: int):
    project = require_project(project_id, g.user, MANAGE)
    require_csrf(json_payload())
    remove_member(project, member_id)
    error = _commit_or_error("remove a project member")
    if error:
        return error
    return jsonify({"success": True, "removed": True})
