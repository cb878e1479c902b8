"""
Car catalogue and the builds drivers save against a car.
"""
import json
from datetime import datetime

from database import db, generate_id


class Car(db.Model):
    __tablename__ = 'cars'

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, unique=True)
    manufacturer = db.Column(db.String(100), nullable=False)
    year = db.Column(db.Integer, nullable=True)
    category = db.Column(db.String(20), nullable=True)  # Gr.1 .. Gr.4, Gr.B, N
    drive_type = db.Column(db.String(10), nullable=True)  # FF, FR, MR, RR, 4WD
    pp = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    builds = db.relationship('CarBuild', backref='car', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Car {self.slug}>'

    def summary(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'manufacturer': self.manufacturer,
            'year': self.year,
        }

    def to_dict(self) -> dict:
        payload = self.summary()
        payload.update({
            'category': self.category,
            'driveType': self.drive_type,
            'pp': self.pp,
        })
        return payload


class CarBuild(db.Model):
    """A named tune for one car. Private builds are visible to their owner and admins only."""

    __tablename__ = 'car_builds'
    __table_args__ = (
        db.Index('ix_car_builds_car', 'car_id'),
        db.Index('ix_car_builds_user', 'user_id'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    car_id = db.Column(db.String(36), db.ForeignKey('cars.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=False)
    final_drive = db.Column(db.String(20), nullable=True)
    gear_ratios_json = db.Column(db.Text, nullable=True)  # JSON list of ratio strings, 1st gear first

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship('User')

    def __repr__(self):
        return f'<CarBuild {self.name}>'

    def is_owned_by(self, principal) -> bool:
        return principal is not None and (principal.id == self.user_id or principal.is_admin)

    def is_visible_to(self, principal) -> bool:
        return self.is_public or self.is_owned_by(principal)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'isPublic': self.is_public,
            'carId': self.car_id,
            'car': self.car.summary() if self.car else None,
            'userId': self.user_id,
            'user': self.user.summary() if self.user else None,
            'finalDrive': self.final_drive,
            'gearRatios': json.loads(self.gear_ratios_json) if self.gear_ratios_json else [],
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
