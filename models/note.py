"""
Shared sticky-notes board and per-user thumbs up/down votes.
"""
from datetime import datetime
from database import db, generate_id


class Note(db.Model):
    __tablename__ = 'notes'

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    title = db.Column(db.String(200), nullable=False, default='')
    content = db.Column(db.Text, nullable=False, default='')
    color = db.Column(db.String(7), nullable=False, default='#fef08a')
    position_x = db.Column(db.Integer, nullable=False, default=0)
    position_y = db.Column(db.Integer, nullable=False, default=0)
    pinned = db.Column(db.Boolean, nullable=False, default=False)

    created_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    created_by = db.relationship('User')
    votes = db.relationship('NoteVote', backref='note', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Note {self.title!r}>'

    def is_owned_by(self, principal) -> bool:
        return principal is not None and (principal.id == self.created_by_id or principal.is_admin)

    def to_dict(self, viewer_id=None) -> dict:
        votes = self.votes.all()
        mine = next((v.vote_type for v in votes if v.user_id == viewer_id), None)
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'color': self.color,
            'positionX': self.position_x,
            'positionY': self.position_y,
            'pinned': self.pinned,
            'createdById': self.created_by_id,
            'createdBy': self.created_by.summary() if self.created_by else None,
            'upvotes': sum(1 for v in votes if v.vote_type == NoteVote.UP),
            'downvotes': sum(1 for v in votes if v.vote_type == NoteVote.DOWN),
            'userVote': mine,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }


class NoteVote(db.Model):
    """One vote per user per note; voting again with the other type switches it."""

    UP = 'up'
    DOWN = 'down'
    TYPES = (UP, DOWN)

    __tablename__ = 'note_votes'
    __table_args__ = (
        db.UniqueConstraint('note_id', 'user_id', name='uq_note_votes_note_user'),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    note_id = db.Column(db.String(36), db.ForeignKey('notes.id', ondelete='CASCADE'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    vote_type = db.Column(db.String(4), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
