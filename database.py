"""
Database setup and initialization for the FridayGT race organiser.
"""
import uuid

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def init_db(app):
    """Initialize the database with the Flask app."""
    db.init_app(app)
    with app.app_context():
        # Import all models to register them with SQLAlchemy
        from models import (User, Track, PartCategory, Part, Race, RaceMember,
                            RunList, RunListEntry, RunListEdit, AuditLog)
        db.create_all()


def generate_id() -> str:
    """Primary keys are opaque UUID4 strings."""
    return str(uuid.uuid4())
