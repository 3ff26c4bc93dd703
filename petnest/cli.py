from __future__ import annotations

from datetime import date, timedelta

import click
from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .extensions import db
from .models.job import Application, JobPost, Review
from .models.notification import Notification
from .models.post import AdoptionForm, DonationPost, MissingPost
from .models.social import Comment, Upvote
from .models.store import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    PetOrder,
    Product,
    ProductRating,
    ShopPet,
)
from .models.user import Admin, Caregiver, User
from .models.vet import Appointment, VetDoctor
from .services import accounts

# children first, so foreign keys never dangle mid-purge
PURGE_ORDER = (
    Notification, Upvote, Comment, AdoptionForm, Review, Application, JobPost,
    DonationPost, MissingPost, CartItem, Cart, OrderItem, Order, ProductRating,
    PetOrder, Product, ShopPet, Appointment, VetDoctor, Caregiver, User, Admin,
)


def _db_uri() -> str:
    return current_app.config.get("SQLALCHEMY_DATABASE_URI", "")


@click.command("init-db")
def init_db_cmd():
    click.echo(f"Creating tables on DB: {_db_uri()}")
    db.create_all()
    click.echo("✔ Tables created.")


@click.command("reset-db")
@click.option("--force", is_flag=True, help="Drop and recreate every table (irreversible).")
def reset_db_cmd(force: bool):
    if not force:
        click.echo("Add --force to confirm dropping all tables.")
        return
    click.echo(f"Dropping & creating tables on DB: {_db_uri()}")
    db.drop_all()
    db.create_all()
    click.echo("✔ Database reset.")


@click.command("purge-data")
def purge_data_cmd():
    for model in PURGE_ORDER:
        db.session.query(model).delete()
    db.session.commit()
    try:
        db.session.execute(text("DELETE FROM sqlite_sequence"))
        db.session.commit()
    except OperationalError:
        # only AUTOINCREMENT tables on sqlite have it
        db.session.rollback()
    click.echo("✔ All data removed (schema kept).")


@click.command("create-admin")
@click.argument("username")
@click.password_option()
def create_admin_cmd(username: str, password: str):
    admin = accounts.create_admin(username, password)
    click.echo(f"✔ Admin '{admin.username}' created.")


def _demo_user(email: str, name: str, **extra) -> User:
    user = User(email=email, name=name, **extra)
    user.set_password("demo1234")
    user.set_location("Bulgaria", "Sofia", "Lozenets")
    db.session.add(user)
    return user


@click.command("seed-demo")
def seed_demo_cmd():
    owner = _demo_user("owner@petnest.dev", "Demo Owner", daily_availability=4, has_outdoor_space=True)
    neighbour = _demo_user("neighbour@petnest.dev", "Demo Neighbour", has_children=True)

    caregiver = Caregiver(
        email="care@petnest.dev",
        name="Demo Caregiver",
        bio="Dog walks and cat sitting around Lozenets.",
        experience_years=3,
        hourly_rate=12.5,
        is_verified=True,
    )
    caregiver.set_password("demo1234")
    caregiver.set_location("Bulgaria", "Sofia", "Lozenets")
    db.session.add(caregiver)
    db.session.flush()

    db.session.add(DonationPost(
        user_id=owner.id, title="Luna needs a home", species="Cat", breed="Mix",
        gender="female", age=2, vaccinated=True, neutered=True,
        country="bulgaria", city="sofia", area="lozenets",
    ))
    db.session.add(MissingPost(
        user_id=neighbour.id, title="Rex went missing", species="Dog", breed="Labrador",
        last_seen_at=date.today() - timedelta(days=1), contact_info="neighbour@petnest.dev",
        country="bulgaria", city="sofia", area="lozenets",
    ))
    job = JobPost(
        user_id=owner.id, title="Weekend dog sitting", pet_type="dog",
        min_price=20, max_price=60,
        start_date=date.today() + timedelta(days=3),
        end_date=date.today() + timedelta(days=5),
    )
    job.tag_list = ["dog", "weekend"]
    job.set_location("Bulgaria", "Sofia", "Lozenets")
    db.session.add(job)

    vet = VetDoctor(name="Dr. Elena Petrova", specialty="Small animals", contact="0888 123 456")
    vet.set_location("Bulgaria", "Sofia", "Lozenets")
    db.session.add(vet)

    db.session.add_all([
        Product(name="Chew rope", price=7.9, stock=40, category="toys"),
        Product(name="Grain-free kibble 2kg", price=24.5, stock=15, category="food"),
        ShopPet(name="Biscuit", breed="Beagle", age=1, price=350, energy_level=4,
                space_required=3, maintenance=2, child_friendly=True),
        ShopPet(name="Mochi", breed="Sphynx", age=2, price=500, energy_level=2,
                space_required=1, maintenance=3, child_friendly=True, allergy_safe=True),
    ])
    db.session.commit()

    click.echo(
        "✔ Seed done. Users: owner@petnest.dev / neighbour@petnest.dev, "
        "caregiver: care@petnest.dev (password: demo1234)"
    )
