import io
import os
import sys
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from petnest import create_app
from petnest.auth.guards import issue_token
from petnest.extensions import db
from petnest.models.job import JobPost
from petnest.models.post import DonationPost, MissingPost
from petnest.models.store import Product, ShopPet
from petnest.models.user import Admin, Caregiver, User
from petnest.models.vet import VetDoctor

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def _assert_memory_db(uri: str):
    if uri != "sqlite:///:memory:":
        raise RuntimeError(
            f"Refusing to run tests on non-memory DB: {uri!r}. "
            "This guard protects your real database."
        )


def _account(row):
    return SimpleNamespace(
        id=row.id,
        name=getattr(row, "name", None) or getattr(row, "username", None),
        headers={"Authorization": f"Bearer {issue_token(row)}"},
    )


@pytest.fixture(scope="function")
def app(tmp_path):
    os.environ.pop("DATABASE_URL", None)

    flask_app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "JWT_SECRET_KEY": "test-jwt-secret-key-long-enough-for-hs256",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "LOG_LEVEL": "WARNING",
        "PAGE_SIZE": 3,
    })

    _assert_memory_db(flask_app.config["SQLALCHEMY_DATABASE_URI"])

    # no app context is held across requests: Flask-Login caches the
    # current principal on g, which lives on the app context
    with flask_app.app_context():
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        _assert_memory_db(flask_app.config["SQLALCHEMY_DATABASE_URI"])
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    def _make_user(email: str, name: str = "Test User", city="Sofia", area="Lozenets", **extra):
        with app.app_context():
            u = User(email=email, name=name, **extra)
            u.set_password("password123")
            u.set_location("Bulgaria", city, area)
            db.session.add(u)
            db.session.commit()
            return _account(u)
    return _make_user


@pytest.fixture()
def make_caregiver(app):
    def _make_caregiver(email: str, name: str = "Test Caregiver", **extra):
        with app.app_context():
            c = Caregiver(email=email, name=name, **extra)
            c.set_password("password123")
            c.set_location("Bulgaria", "Sofia", "Lozenets")
            db.session.add(c)
            db.session.commit()
            return _account(c)
    return _make_caregiver


@pytest.fixture()
def admin_account(app):
    with app.app_context():
        a = Admin(username="root")
        a.set_password("password123")
        db.session.add(a)
        db.session.commit()
        return _account(a)


@pytest.fixture()
def make_donation(app):
    def _make_donation(owner_id: int, title: str = "Luna needs a home", **extra):
        with app.app_context():
            post = DonationPost(user_id=owner_id, title=title, species="Cat", **extra)
            post.set_location("Bulgaria", "Sofia", "Lozenets")
            db.session.add(post)
            db.session.commit()
            return post.id
    return _make_donation


@pytest.fixture()
def make_missing(app):
    def _make_missing(owner_id: int, title: str = "Rex went missing", **extra):
        with app.app_context():
            post = MissingPost(user_id=owner_id, title=title, species="Dog", **extra)
            post.set_location("Bulgaria", "Sofia", "Lozenets")
            db.session.add(post)
            db.session.commit()
            return post.id
    return _make_missing


@pytest.fixture()
def make_job(app):
    def _make_job(owner_id: int, title: str = "Weekend dog sitting", **extra):
        with app.app_context():
            start = date.today() + timedelta(days=3)
            values = dict(
                user_id=owner_id, title=title, pet_type="dog",
                min_price=20, max_price=60,
                start_date=start, end_date=start + timedelta(days=2),
            )
            values.update(extra)
            job = JobPost(**values)
            job.tag_list = ["dog", "weekend"]
            job.set_location("Bulgaria", "Sofia", "Lozenets")
            db.session.add(job)
            db.session.commit()
            return job.id
    return _make_job


@pytest.fixture()
def make_product(app):
    def _make_product(name: str = "Chew rope", price: float = 7.5, stock: int = 5, **extra):
        with app.app_context():
            p = Product(name=name, price=price, stock=stock, **extra)
            db.session.add(p)
            db.session.commit()
            return p.id
    return _make_product


@pytest.fixture()
def make_shop_pet(app):
    def _make_shop_pet(name: str = "Biscuit", price: float = 300, **extra):
        with app.app_context():
            pet = ShopPet(name=name, price=price, **extra)
            db.session.add(pet)
            db.session.commit()
            return pet.id
    return _make_shop_pet


@pytest.fixture()
def make_vet(app):
    def _make_vet(name: str = "Dr. Petrova", city="Sofia", area="Lozenets", **extra):
        with app.app_context():
            vet = VetDoctor(name=name, specialty="Small animals", **extra)
            vet.set_location("Bulgaria", city, area)
            db.session.add(vet)
            db.session.commit()
            return vet.id
    return _make_vet


@pytest.fixture()
def fetch(app):
    """Re-read a row in a fresh app context; returns a detached snapshot dict."""

    def _fetch(model, row_id):
        with app.app_context():
            row = db.session.get(model, row_id)
            if row is None:
                return None
            return {c.name: getattr(row, c.name) for c in model.__table__.columns}
    return _fetch


@pytest.fixture()
def png_upload():
    def _png_upload(name: str = "photo.png"):
        return (io.BytesIO(PNG_BYTES), name)
    return _png_upload
