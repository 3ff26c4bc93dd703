from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, UniqueConstraint

from ..extensions import db

# exactly one of the two post columns is set
_ONE_TARGET = (
    "(donation_post_id IS NOT NULL AND missing_post_id IS NULL) OR "
    "(donation_post_id IS NULL AND missing_post_id IS NOT NULL)"
)


class Upvote(db.Model):
    __tablename__ = "upvotes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    donation_post_id = db.Column(
        db.Integer, db.ForeignKey("donation_posts.id", ondelete="CASCADE"), nullable=True, index=True
    )
    missing_post_id = db.Column(
        db.Integer, db.ForeignKey("missing_posts.id", ondelete="CASCADE"), nullable=True, index=True
    )

    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "donation_post_id", name="uq_upvote_user_donation"),
        UniqueConstraint("user_id", "missing_post_id", name="uq_upvote_user_missing"),
        CheckConstraint(_ONE_TARGET, name="ck_upvote_one_target"),
    )


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    donation_post_id = db.Column(
        db.Integer, db.ForeignKey("donation_posts.id", ondelete="CASCADE"), nullable=True, index=True
    )
    missing_post_id = db.Column(
        db.Integer, db.ForeignKey("missing_posts.id", ondelete="CASCADE"), nullable=True, index=True
    )

    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint(_ONE_TARGET, name="ck_comment_one_target"),
    )

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "user": self.user.to_public_dict() if self.user else None,
            "donation_post_id": self.donation_post_id,
            "missing_post_id": self.missing_post_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
