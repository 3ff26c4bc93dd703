from flask import Blueprint, current_app, jsonify, request
from wtforms import DateField, FloatField, IntegerField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional, ValidationError

from ..auth.guards import principal, role_required
from ..forms import ApiForm, NotBlank, Present, TagListField, clean_text
from ..services import jobs

jobs_bp = Blueprint("jobs", __name__)

JOB_ACTIONS = ("select_caregiver", "end_job", "cancel")


class JobForm(ApiForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    pet_type = StringField("Pet type", validators=[Optional(), Length(max=50)])
    tags = TagListField("Tags")
    min_price = FloatField("Minimum price", validators=[Present(), NumberRange(min=0)])
    max_price = FloatField("Maximum price", validators=[Present(), NumberRange(min=0)])
    start_date = DateField("Start date", validators=[DataRequired()])
    end_date = DateField("End date", validators=[DataRequired()])
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    city = StringField("City", validators=[DataRequired(), Length(max=80)])
    area = StringField("Area", validators=[DataRequired(), Length(max=80)])

    def validate_end_date(self, field):
        if self.start_date.data and field.data and field.data < self.start_date.data:
            raise ValidationError("End date cannot be before start date")


class JobUpdateForm(ApiForm):
    title = StringField("Title", validators=[NotBlank(), Optional(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    pet_type = StringField("Pet type", validators=[Optional(), Length(max=50)])
    tags = TagListField("Tags")
    min_price = FloatField("Minimum price", validators=[Optional(), NumberRange(min=0)])
    max_price = FloatField("Maximum price", validators=[Optional(), NumberRange(min=0)])
    start_date = DateField("Start date", validators=[Optional()])
    end_date = DateField("End date", validators=[Optional()])
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    city = StringField("City", validators=[NotBlank(), Optional(), Length(max=80)])
    area = StringField("Area", validators=[NotBlank(), Optional(), Length(max=80)])


class JobActionForm(ApiForm):
    action = StringField("Action", validators=[DataRequired(), AnyOf(JOB_ACTIONS)])
    application_id = IntegerField("Application")
    rating = IntegerField("Rating", validators=[Optional(), NumberRange(min=1, max=5)])
    comment = TextAreaField("Comment", validators=[Optional(), Length(max=2000)])

    def validate_application_id(self, field):
        if self.action.data == "select_caregiver" and field.data is None:
            raise ValidationError("Choose an application to accept")


class ReviewForm(ApiForm):
    job_id = IntegerField("Job", validators=[Present()])
    rating = IntegerField("Rating", validators=[Present(), NumberRange(min=1, max=5)])
    comment = TextAreaField("Comment", validators=[Optional(), Length(max=2000)])


class ApplicationForm(ApiForm):
    job_id = IntegerField("Job", validators=[Present()])
    proposal = TextAreaField("Proposal", validators=[DataRequired(), Length(max=5000)])
    requested_amount = FloatField("Requested amount", validators=[Present(), NumberRange(min=0)])


# users

@jobs_bp.get("/users/jobs")
@role_required("user")
def my_jobs():
    rows = jobs.list_my_jobs(principal(), request.args.get("status"))
    return jsonify([j.to_dict() for j in rows])


@jobs_bp.post("/users/jobs")
@role_required("user")
def create_job():
    form = JobForm().validate_or_raise()
    job = jobs.create_job(principal(), form.data)
    return jsonify(job.to_dict()), 201


@jobs_bp.get("/users/jobs/<int:job_id>")
@role_required("user")
def job_detail(job_id):
    return jsonify(jobs.job_detail(job_id, principal()))


@jobs_bp.put("/users/jobs/<int:job_id>")
@role_required("user")
def update_job(job_id):
    form = JobUpdateForm().validate_or_raise()
    job = jobs.update_job(principal(), job_id, form.provided())
    return jsonify(job.to_dict())


@jobs_bp.patch("/users/jobs/<int:job_id>")
@role_required("user")
def job_action(job_id):
    form = JobActionForm().validate_or_raise()
    user = principal()
    action = form.action.data
    if action == "select_caregiver":
        job = jobs.select_caregiver(user, job_id, form.application_id.data)
    elif action == "end_job":
        job = jobs.end_job(user, job_id, form.rating.data, clean_text(form.comment.data))
    else:
        job = jobs.cancel_job(user, job_id)
    return jsonify(job.to_dict())


@jobs_bp.delete("/users/jobs/<int:job_id>")
@role_required("user")
def delete_job(job_id):
    jobs.delete_job(principal(), job_id)
    return jsonify({"message": "Job deleted"})


@jobs_bp.post("/users/reviews")
@role_required("user")
def submit_review():
    form = ReviewForm().validate_or_raise()
    review = jobs.submit_review(
        principal(), form.job_id.data, form.rating.data, clean_text(form.comment.data)
    )
    return jsonify(review.to_dict()), 201


# caregivers

@jobs_bp.get("/caregivers/jobs")
@role_required("caregiver")
def open_jobs():
    result = jobs.list_open_jobs(
        city=request.args.get("city"),
        area=request.args.get("area"),
        tag=request.args.get("tag"),
        page=request.args.get("page", 1, type=int),
        per_page=current_app.config.get("PAGE_SIZE", 12),
    )
    result["items"] = [j.to_dict() for j in result["items"]]
    return jsonify(result)


@jobs_bp.get("/caregivers/jobs/<int:job_id>")
@role_required("caregiver")
def caregiver_job_detail(job_id):
    return jsonify(jobs.job_detail(job_id, principal()))


@jobs_bp.post("/caregivers/jobs/apply")
@role_required("caregiver")
def apply():
    form = ApplicationForm().validate_or_raise()
    application = jobs.apply(principal(), form.job_id.data, {
        "proposal": form.proposal.data.strip(),
        "requested_amount": form.requested_amount.data,
    })
    return jsonify(application.to_dict()), 201


@jobs_bp.get("/caregivers/applications")
@role_required("caregiver")
def my_applications():
    rows = []
    for application in jobs.caregiver_applications(principal()):
        item = application.to_dict()
        item["job"] = application.job.to_dict()
        rows.append(item)
    return jsonify(rows)
