from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from flask_wtf.file import FileAllowed, FileField
from wtforms import BooleanField, DateField, StringField, TextAreaField
from wtforms.fields import URLField
from wtforms.validators import URL, DataRequired, Length, Optional

from ..auth.guards import principal, role_required
from ..forms import ApiForm, NotBlank
from ..media import ALLOWED_EXTENSIONS
from ..services import missing_posts

missing_bp = Blueprint("missing", __name__)


class MissingPostForm(ApiForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    species = StringField("Species", validators=[Optional(), Length(max=50)])
    breed = StringField("Breed", validators=[Optional(), Length(max=120)])
    gender = StringField("Gender", validators=[Optional(), Length(max=20)])
    last_seen_at = DateField("Last seen on", validators=[Optional()])
    contact_info = StringField("Contact", validators=[Optional(), Length(max=200)])
    is_found = BooleanField("Found")
    country = StringField("Country", validators=[Optional(), Length(max=80)])
    city = StringField("City", validators=[DataRequired(), Length(max=80)])
    area = StringField("Area", validators=[DataRequired(), Length(max=80)])
    image_url = URLField("Image URL", validators=[Optional(), URL(message="Enter a valid URL")])
    image = FileField("Upload image", validators=[FileAllowed(sorted(ALLOWED_EXTENSIONS), "Images only!")])


class MissingPostUpdateForm(MissingPostForm):
    title = StringField("Title", validators=[NotBlank(), Optional(), Length(max=200)])
    city = StringField("City", validators=[NotBlank(), Optional(), Length(max=80)])
    area = StringField("Area", validators=[NotBlank(), Optional(), Length(max=80)])


class CommentForm(ApiForm):
    content = TextAreaField("Comment", validators=[DataRequired(), Length(max=2000)])


def _viewer():
    return principal() if current_user.is_authenticated and current_user.role == "user" else None


def _upvote_state(post, upvoted):
    return jsonify({"upvotes_count": post.upvotes_count, "has_upvoted": upvoted})


@missing_bp.get("/missingposts")
def list_posts():
    result = missing_posts.list_posts(
        city=request.args.get("city"),
        area=request.args.get("area"),
        species=request.args.get("species"),
        search=request.args.get("q"),
        include_found=request.args.get("include_found", "").lower() in ("1", "true"),
        page=request.args.get("page", 1, type=int),
        per_page=current_app.config.get("PAGE_SIZE", 12),
    )
    result["items"] = [p.to_dict() for p in result["items"]]
    return jsonify(result)


@missing_bp.post("/missingposts")
@role_required("user")
def create_post():
    form = MissingPostForm().validate_or_raise()
    post = missing_posts.create_post(principal(), form.data, form.image.data or None)
    return jsonify(post.to_dict()), 201


@missing_bp.get("/missingposts/<int:post_id>")
def post_detail(post_id):
    return jsonify(missing_posts.post_detail(post_id, _viewer()))


@missing_bp.put("/missingposts/<int:post_id>")
@role_required("user")
def update_post(post_id):
    form = MissingPostUpdateForm().validate_or_raise()
    data = form.provided()
    data.pop("image", None)
    post = missing_posts.update_post(principal(), post_id, data, form.image.data or None)
    return jsonify(post.to_dict())


@missing_bp.delete("/missingposts/<int:post_id>")
@role_required("user")
def delete_post(post_id):
    missing_posts.delete_post(principal(), post_id)
    return jsonify({"message": "Post deleted"})


@missing_bp.post("/missingposts/<int:post_id>/upvote")
@role_required("user")
def upvote(post_id):
    return _upvote_state(missing_posts.upvote(principal(), post_id), True)


@missing_bp.post("/missingposts/<int:post_id>/remove-upvote")
@missing_bp.delete("/missingposts/<int:post_id>/upvote")
@role_required("user")
def remove_upvote(post_id):
    return _upvote_state(missing_posts.remove_upvote(principal(), post_id), False)


@missing_bp.post("/missingposts/<int:post_id>/comment")
@role_required("user")
def add_comment(post_id):
    form = CommentForm().validate_or_raise()
    comment = missing_posts.add_comment(principal(), post_id, form.content.data.strip())
    return jsonify(comment.to_dict()), 201


@missing_bp.delete("/missingposts/<int:post_id>/comment/<int:comment_id>")
@role_required("user")
def delete_comment(post_id, comment_id):
    missing_posts.delete_comment(principal(), post_id, comment_id)
    return jsonify({"message": "Comment deleted"})
