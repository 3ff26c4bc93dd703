from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from flask_wtf.file import FileAllowed, FileField
from wtforms import BooleanField, IntegerField, StringField, TextAreaField
from wtforms.fields import DateTimeLocalField, URLField
from wtforms.validators import URL, DataRequired, Length, NumberRange, Optional

from ..auth.guards import principal, role_required
from ..forms import DATETIME_FORMATS, ApiForm, NotBlank
from ..media import ALLOWED_EXTENSIONS
from ..services import donations

donations_bp = Blueprint("donations", __name__)


class DonationPostForm(ApiForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    species = StringField("Species", validators=[Optional(), Length(max=50)])
    breed = StringField("Breed", validators=[Optional(), Length(max=120)])
    gender = StringField("Gender", validators=[Optional(), Length(max=20)])
    age = IntegerField("Age (years)", validators=[Optional(), NumberRange(min=0, max=100)])
    vaccinated = BooleanField("Vaccinated")
    neutered = BooleanField("Neutered")
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    city = StringField("City", validators=[DataRequired(), Length(max=80)])
    area = StringField("Area", validators=[DataRequired(), Length(max=80)])
    image_url = URLField("Image URL", validators=[Optional(), URL(message="Enter a valid URL")])
    image = FileField("Upload image", validators=[FileAllowed(sorted(ALLOWED_EXTENSIONS), "Images only!")])


class DonationPostUpdateForm(DonationPostForm):
    title = StringField("Title", validators=[NotBlank(), Optional(), Length(max=200)])
    city = StringField("City", validators=[NotBlank(), Optional(), Length(max=80)])
    area = StringField("Area", validators=[NotBlank(), Optional(), Length(max=80)])


class CommentForm(ApiForm):
    content = TextAreaField("Comment", validators=[DataRequired(), Length(max=2000)])


class AdoptionApplicationForm(ApiForm):
    description = TextAreaField("Why would you like to adopt?", validators=[DataRequired(), Length(max=5000)])
    meeting_time = DateTimeLocalField("Proposed meeting time", format=DATETIME_FORMATS, validators=[Optional()])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])


def _page():
    return request.args.get("page", 1, type=int), current_app.config.get("PAGE_SIZE", 12)


def _viewer():
    return principal() if current_user.is_authenticated and current_user.role == "user" else None


@donations_bp.get("/donation")
def list_posts():
    page, per_page = _page()
    result = donations.list_posts(
        species=request.args.get("species"),
        city=request.args.get("city"),
        area=request.args.get("area"),
        search=request.args.get("q"),
        include_unavailable=request.args.get("include_unavailable", "").lower() in ("1", "true"),
        page=page,
        per_page=per_page,
    )
    result["items"] = [p.to_dict() for p in result["items"]]
    return jsonify(result)


@donations_bp.post("/donation")
@role_required("user")
def create_post():
    form = DonationPostForm().validate_or_raise()
    post = donations.create_post(principal(), form.data, form.image.data or None)
    return jsonify(post.to_dict()), 201


@donations_bp.get("/donation/mine")
@role_required("user")
def my_posts():
    return jsonify([p.to_dict() for p in donations.list_mine(principal())])


@donations_bp.get("/donation/meetings")
@role_required("user")
def meetings():
    rows = []
    for form in donations.meetings(principal()):
        item = form.to_dict()
        item["post"] = form.donation_post.to_dict()
        rows.append(item)
    return jsonify(rows)


@donations_bp.get("/donation/<int:post_id>")
def post_detail(post_id):
    return jsonify(donations.post_detail(post_id, _viewer()))


@donations_bp.put("/donation/<int:post_id>")
@role_required("user")
def update_post(post_id):
    form = DonationPostUpdateForm().validate_or_raise()
    data = form.provided()
    data.pop("image", None)
    post = donations.update_post(principal(), post_id, data, form.image.data or None)
    return jsonify(post.to_dict())


@donations_bp.delete("/donation/<int:post_id>")
@role_required("user")
def delete_post(post_id):
    donations.delete_post(principal(), post_id)
    return jsonify({"message": "Post deleted"})


@donations_bp.post("/donation/<int:post_id>/upvote")
@role_required("user")
def upvote(post_id):
    post = donations.upvote(principal(), post_id)
    return jsonify({"upvotes_count": post.upvotes_count, "has_upvoted": True})


@donations_bp.delete("/donation/<int:post_id>/upvote")
@role_required("user")
def remove_upvote(post_id):
    post = donations.remove_upvote(principal(), post_id)
    return jsonify({"upvotes_count": post.upvotes_count, "has_upvoted": False})


@donations_bp.post("/donation/<int:post_id>/comment")
@role_required("user")
def add_comment(post_id):
    form = CommentForm().validate_or_raise()
    comment = donations.add_comment(principal(), post_id, form.content.data.strip())
    return jsonify(comment.to_dict()), 201


@donations_bp.delete("/donation/<int:post_id>/comment/<int:comment_id>")
@role_required("user")
def delete_comment(post_id, comment_id):
    donations.delete_comment(principal(), post_id, comment_id)
    return jsonify({"message": "Comment deleted"})


@donations_bp.post("/donation/<int:post_id>/apply")
@role_required("user")
def apply(post_id):
    form = AdoptionApplicationForm().validate_or_raise()
    application = donations.submit_adoption_form(principal(), post_id, form.data)
    return jsonify(application.to_dict()), 201


@donations_bp.get("/donation/<int:post_id>/applications")
@role_required("user")
def applications(post_id):
    rows = donations.list_applications(principal(), post_id)
    return jsonify([r.to_dict() for r in rows])


@donations_bp.post("/donation/application/<int:form_id>/accept")
@role_required("user")
def accept_application(form_id):
    application = donations.accept_adoption_form(principal(), form_id)
    return jsonify(application.to_dict())
