"""
Recorded lap times. ``build_name`` is copied from the build when the lap is
recorded so the history survives the build being renamed or deleted.
"""
from datetime import datetime
from database import db, generate_id


class LapTime(db.Model):
    __tablename__ = 'lap_times'
    __table_args__ = (
        db.Index('ix_lap_times_track_car', 'track_id', 'car_id'),
        db.Index('ix_lap_times_user', 'user_id'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    track_id = db.Column(db.String(36), db.ForeignKey('tracks.id', ondelete='CASCADE'), nullable=False)
    car_id = db.Column(db.String(36), db.ForeignKey('cars.id', ondelete='CASCADE'), nullable=False)
    build_id = db.Column(db.String(36), db.ForeignKey('car_builds.id', ondelete='SET NULL'), nullable=True)
    build_name = db.Column(db.String(100), nullable=True)
    time_ms = db.Column(db.Integer, nullable=False)
    session_type = db.Column(db.String(1), nullable=False, default='R')  # Q(ualifying) or R(ace)
    notes = db.Column(db.Text, nullable=True)
    conditions = db.Column(db.String(200), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship('User')
    track = db.relationship('Track')
    car = db.relationship('Car')

    def __repr__(self):
        return f'<LapTime {self.time_ms}ms>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'timeMs': self.time_ms,
            'sessionType': self.session_type,
            'notes': self.notes,
            'conditions': self.conditions,
            'buildId': self.build_id,
            'buildName': self.build_name,
            'user': self.user.summary() if self.user else None,
            'track': self.track.summary() if self.track else None,
            'car': self.car.summary() if self.car else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
