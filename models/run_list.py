"""
Run list models: a named, ordered schedule of tracks/races for a session night.
"""
from datetime import datetime
from database import db, generate_id


class RunList(db.Model):
    __tablename__ = 'run_lists'

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    is_live = db.Column(db.Boolean, nullable=False, default=False)

    created_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    created_by = db.relationship('User')
    entries = db.relationship(
        'RunListEntry',
        backref='run_list',
        lazy='dynamic',
        cascade='all, delete-orphan',
        order_by='RunListEntry.order',
    )
    edits = db.relationship('RunListEdit', backref='run_list', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<RunList {self.name}>'

    def is_owned_by(self, principal) -> bool:
        return principal is not None and (principal.id == self.created_by_id or principal.is_admin)

    def to_dict(self, include_entries=False) -> dict:
        payload = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'isPublic': self.is_public,
            'isActive': self.is_active,
            'isLive': self.is_live,
            'createdById': self.created_by_id,
            'createdBy': self.created_by.summary() if self.created_by else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
            'entryCount': self.entries.count(),
        }
        if include_entries:
            payload['entries'] = [e.to_dict() for e in self.entries.all()]
        return payload


class RunListEntry(db.Model):
    """One slot in a run list: a track, optionally tied to a configured race."""

    __tablename__ = 'run_list_entries'
    __table_args__ = (
        db.Index('ix_run_list_entries_list_order', 'run_list_id', 'order'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    run_list_id = db.Column(db.String(36), db.ForeignKey('run_lists.id', ondelete='CASCADE'), nullable=False)
    order = db.Column('order', db.Integer, nullable=False)
    track_id = db.Column(db.String(36), db.ForeignKey('tracks.id'), nullable=False)
    race_id = db.Column(db.String(36), db.ForeignKey('races.id', ondelete='SET NULL'), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    updated_by_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    track = db.relationship('Track')
    race = db.relationship('Race')
    updated_by = db.relationship('User')

    def __repr__(self):
        return f'<RunListEntry list={self.run_list_id} order={self.order}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'runListId': self.run_list_id,
            'order': self.order,
            'trackId': self.track_id,
            'track': self.track.summary() if self.track else None,
            'raceId': self.race_id,
            'race': {'id': self.race.id, 'displayName': self.race.display_name} if self.race else None,
            'notes': self.notes,
            'updatedById': self.updated_by_id,
            'updatedByUser': self.updated_by.summary() if self.updated_by else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }


class RunListEdit(db.Model):
    """Change history shown on a run list ("Last updated by X")."""

    __tablename__ = 'run_list_edits'

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    run_list_id = db.Column(db.String(36), db.ForeignKey('run_lists.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    action = db.Column(db.String(40), nullable=False)  # UPDATE, ADD_ENTRY, REMOVE_ENTRY, REORDER
    details = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
