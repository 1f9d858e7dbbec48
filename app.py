import logging
import os

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request, session
from flask_migrate import Migrate
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError

from database import db

load_dotenv()

# Initialize Flask app
app = Flask(__name__)
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
    "TASKBOARD_DATABASE_URI", "sqlite:///taskboard.db"
)
app.config["SECRET_KEY"] = os.environ.get("TASKBOARD_SECRET_KEY", "dev-taskboard-secret-key")
app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")

db.init_app(app)

# Models import should be after initializing db
from models.user import User
from models.project import Project
from models.project_member import ProjectMember
from models.task import Task

from forms import LoginForm, SignupForm
from routes import bind_json_form, handle_taskboard_error, json_error, json_payload, require_csrf
from routes.projects import projects_bp
from routes.tasks import tasks_bp
from services.errors import TaskboardError

# Create flask command lines to update the db based on the model
# Useage:
# > flask db migrate -m "Add task priority"
# > flask db upgrade
migrate = Migrate(app, db)
app.register_blueprint(projects_bp)
app.register_blueprint(tasks_bp)
app.register_error_handler(TaskboardError, handle_taskboard_error)

# User Authentication
# ------------------------------
login_exempt_routes = ["csrf_token", "login", "logout", "register", "static"]


@app.before_request
def require_login():
    """All routes require a User logged in, except the ones listed in login_exempt_routes

    This method excecutes before every request and checks if there is a user_id
    stored in session. If so, it sets the g.user that contains the object User which
    can be used in the subsecuent method.

    Returns:
        A 401 JSON response if no user is found in session
    """
    user_id = session.get("user_id")
    g.user = db.session.get(User, user_id) if user_id else None
    if g.user is None and request.endpoint and request.endpoint not in login_exempt_routes:
        return json_error("Authentication required.", status=401)


def authenticate_user(email, password):
    user = User.query.filter_by(email=email).first()
    if user and user.check_password(password):
        session.clear()
        session["user_id"] = user.id
        session["user"] = user.name
        return user
    return None


@app.route("/api/auth/csrf", methods=["GET"])
def csrf_token():
    """Return a CSRF token to send with state-changing JSON requests."""
    return jsonify({"csrf_token": generate_csrf()})


@app.route("/api/auth/register", methods=["POST"])
def register():
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(SignupForm, payload)
    user = User(name=form.name.data.strip(), email=form.email.data.strip())
    user.set_password(form.password.data)
    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logging.error("Database error while registering user", exc_info=True)
        return json_error("An internal error has occurred.", status=500)
    session.clear()
    session["user_id"] = user.id
    session["user"] = user.name
    return jsonify({"success": True, "user": user.to_dict(), "csrf_token": generate_csrf()}), 201


@app.route("/api/auth/login", methods=["POST"])
def login():
    payload = json_payload()
    require_csrf(payload)
    form = bind_json_form(LoginForm, payload)
    user = authenticate_user(form.email.data.strip(), form.password.data)
    if user is None:
        logging.warning("Failed login attempt for %s", form.email.data)
        return json_error("Invalid email or password.", status=401)
    return jsonify({"success": True, "user": user.to_dict(), "csrf_token": generate_csrf()})


@app.route("/api/auth/logout", methods=["POST"])
def logout():
    session.clear()
    g.user = None
    return jsonify({"success": True})


@app.route("/api/auth/me", methods=["GET"])
def me():
    return jsonify({"success": True, "user": g.user.to_dict()})


# Application Execution
# ------------------------------
if __name__ == "__main__":
    app.run(debug=True)
