import math

from flask_wtf import FlaskForm
from wtforms import (
    FloatField,
    IntegerField,
    PasswordField,
    SelectField,
    StringField,
    TextAreaField,
)
from wtforms.validators import (
    DataRequired,
    Email,
    InputRequired,
    Length,
    NumberRange,
    Optional,
    ValidationError,
)

from models.project_member import ProjectRole
from models.task import TaskPriority, TaskStatus

STATUS_CHOICES = [(status.value, status.value) for status in TaskStatus]
PRIORITY_CHOICES = [(priority.value, priority.value) for priority in TaskPriority]
MEMBER_ROLE_CHOICES = [(ProjectRole.EDITOR.value, "Editor"), (ProjectRole.VIEWER.value, "Viewer")]


def finite_number(form, field):
    if field.data is not None and not math.isfinite(field.data):
        raise ValidationError("Must be a finite number.")


class JsonForm(FlaskForm):
    """Form bound to a JSON payload; CSRF is checked by the route helpers."""

    class Meta:
        csrf = False


class SignupForm(JsonForm):
    email = StringField("Email", [DataRequired(), Email()])
    name = StringField("Name", [DataRequired(), Length(min=2, max=80)])
    password = PasswordField("Password", [DataRequired(), Length(min=6)])

    def validate_email(self, field):
        from models.user import User

        if User.query.filter_by(email=field.data).first():
            raise ValidationError("Email already registered.")


class LoginForm(JsonForm):
    email = StringField("Email", [DataRequired(), Email()])
    password = PasswordField("Password", [DataRequired()])


class ProjectForm(JsonForm):
    title = StringField("Title", [DataRequired(), Length(max=200)])
    description = TextAreaField("Description", [Optional()])


class ProjectUpdateForm(JsonForm):
    title = StringField("Title", [Optional(), Length(max=200)])
    description = TextAreaField("Description", [Optional()])


class MemberForm(JsonForm):
    email = StringField("Email", [DataRequired(), Email()])
    role = SelectField("Role", choices=MEMBER_ROLE_CHOICES, validators=[DataRequired()])


class MemberRoleForm(JsonForm):
    role = SelectField("Role", choices=MEMBER_ROLE_CHOICES, validators=[DataRequired()])


class TaskForm(JsonForm):
    title = StringField("Title", [DataRequired()])
    description = TextAreaField("Description", [Optional()])
    status = SelectField("Status", choices=STATUS_CHOICES, default=TaskStatus.TODO.value)
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, default=TaskPriority.MEDIUM.value)
    assignee_id = IntegerField("Assignee", [Optional()])


class TaskUpdateForm(JsonForm):
    title = StringField("Title", [Optional()])
    description = TextAreaField("Description", [Optional()])
    status = SelectField("Status", choices=STATUS_CHOICES, validators=[Optional()], validate_choice=True)
    priority = SelectField("Priority", choices=PRIORITY_CHOICES, validators=[Optional()], validate_choice=True)
    assignee_id = IntegerField("Assignee", [Optional()])
    order = FloatField("Order", [Optional(), finite_number])
    updated_at = StringField("Updated At", [Optional()])


class ReorderForm(JsonForm):
    task_id = IntegerField("Task", [InputRequired()])
    status = SelectField("Status", choices=STATUS_CHOICES, validators=[InputRequired()])
    order = FloatField("Order", [Optional(), finite_number])
    index = IntegerField("Index", [Optional(), NumberRange(min=0)])
    updated_at = StringField("Updated At", [Optional()])

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators=extra_validators):
            return False
        if self.order.data is None and self.index.data is None:
            self.order.errors.append("Either order or index is required.")
            return False
        return True
