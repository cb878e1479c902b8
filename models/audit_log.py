"""Audit log model for admin actions and roster changes."""
from datetime import datetime
from database import db


class AuditLog(db.Model):
    """Append-only audit entries ("who changed what, from where")."""

    __tablename__ = 'audit_logs'
    __table_args__ = (
        db.Index('ix_audit_logs_created_at', 'created_at'),
        db.Index('ix_audit_logs_actor', 'actor_user_id'),
        db.Index('ix_audit_logs_action', 'action'),
    )

    id = db.Column(db.Integer, primary_key=True)
    # Plain string, not a foreign key: entries outlive removed users
    actor_user_id = db.Column(db.String(36), nullable=True)
    action = db.Column(db.String(80), nullable=False)
    entity_type = db.Column(db.String(80), nullable=False)
    entity_id = db.Column(db.String(64), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    details_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'actorUserId': self.actor_user_id,
            'action': self.action,
            'entityType': self.entity_type,
            'entityId': self.entity_id,
            'ipAddress': self.ip_address,
            'details': self.details_json,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
