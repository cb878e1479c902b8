"""
Race and RaceMember models.

Both carry an ``order`` column scoped to a parent collection: active races are
ordered as one list for the evening, members are ordered within their race.
"""
from datetime import datetime
from database import db, generate_id


class Race(db.Model):
    """A race configuration (track + settings) that can be scheduled tonight."""

    __tablename__ = 'races'
    __table_args__ = (
        db.Index('ix_races_active_order', 'is_active', 'order'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    track_id = db.Column(db.String(36), db.ForeignKey('tracks.id'), nullable=False)
    name = db.Column(db.String(200), nullable=True)
    description = db.Column(db.Text, nullable=True)
    laps = db.Column(db.Integer, nullable=True)
    weather = db.Column(db.String(20), nullable=True)

    # Position among active races; NULL while inactive
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column('order', db.Integer, nullable=True)

    created_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    updated_by_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    track = db.relationship('Track')
    created_by = db.relationship('User', foreign_keys=[created_by_id])
    updated_by = db.relationship('User', foreign_keys=[updated_by_id])
    members = db.relationship(
        'RaceMember',
        backref='race',
        lazy='dynamic',
        cascade='all, delete-orphan',
        order_by='RaceMember.order',
    )

    def __repr__(self):
        return f'<Race {self.display_name}>'

    @property
    def display_name(self):
        if self.name:
            return self.name
        return self.track.name if self.track else 'Unknown Track'

    def to_dict(self, include_members=False) -> dict:
        payload = {
            'id': self.id,
            'name': self.name,
            'displayName': self.display_name,
            'description': self.description,
            'laps': self.laps,
            'weather': self.weather,
            'isActive': self.is_active,
            'order': self.order,
            'trackId': self.track_id,
            'track': self.track.summary() if self.track else None,
            'createdById': self.created_by_id,
            'updatedById': self.updated_by_id,
            'updatedByUser': self.updated_by.summary() if self.updated_by else None,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'memberCount': self.members.count(),
        }
        if include_members:
            payload['members'] = [m.to_dict() for m in self.members.all()]
        return payload


class RaceMember(db.Model):
    """A driver on a race roster, with their grid position and tyre choice."""

    __tablename__ = 'race_members'
    __table_args__ = (
        db.UniqueConstraint('race_id', 'user_id', name='uq_race_member_user'),
        db.Index('ix_race_members_race_order', 'race_id', 'order'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    race_id = db.Column(db.String(36), db.ForeignKey('races.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    order = db.Column('order', db.Integer, nullable=False)
    part_id = db.Column(db.String(36), db.ForeignKey('parts.id'), nullable=False)

    updated_by_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship('User', foreign_keys=[user_id])
    updated_by = db.relationship('User', foreign_keys=[updated_by_id])
    part = db.relationship('Part')

    def __repr__(self):
        return f'<RaceMember race={self.race_id} user={self.user_id} order={self.order}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'raceId': self.race_id,
            'userId': self.user_id,
            'order': self.order,
            'partId': self.part_id,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'updatedById': self.updated_by_id,
            'user': self.user.summary() if self.user else None,
            'updatedByUser': self.updated_by.summary() if self.updated_by else None,
            'part': self.part.summary() if self.part else None,
        }


def _iso(value):
    return value.isoformat() if value else None
