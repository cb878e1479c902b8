"""
User model with the sign-up approval workflow.
"""
from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash
import config
from database import db, generate_id


class User(UserMixin, db.Model):
    """Community member. New accounts start PENDING until an admin approves them."""

    __tablename__ = 'users'
    __table_args__ = (
        db.Index('ix_users_role', 'role'),
    )

    ROLE_PENDING = config.ROLE_PENDING
    ROLE_USER = config.ROLE_USER
    ROLE_ADMIN = config.ROLE_ADMIN

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(200), nullable=True)
    gamertag = db.Column(db.String(50), nullable=True, unique=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_PENDING)
    admin_notified = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_pending(self):
        return self.role == self.ROLE_PENDING

    @property
    def is_approved(self):
        return self.role in config.APPROVED_ROLES

    @property
    def display_name(self):
        return self.gamertag or self.name or self.email

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def summary(self) -> dict:
        """Public identity fragment; gamertags only, never emails."""
        return {'id': self.id, 'gamertag': self.gamertag}

    def to_dict(self) -> dict:
        """Account view for the user themself and for admins."""
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'gamertag': self.gamertag,
            'role': self.role,
            'adminNotified': self.admin_notified,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
