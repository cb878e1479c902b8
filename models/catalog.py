"""
Catalog models: tracks and car parts (tyres are parts in the 'Tyres' category).
"""
from datetime import datetime
from database import db, generate_id


class Track(db.Model):
    """A circuit or layout that races and run-list entries are held on."""

    __tablename__ = 'tracks'

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, unique=True)
    location = db.Column(db.String(200), nullable=True)
    category = db.Column(db.String(50), nullable=True)  # circuit, city, dirt, oval

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<Track {self.slug}>'

    def summary(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'location': self.location,
            'category': self.category,
        }


class PartCategory(db.Model):
    __tablename__ = 'part_categories'

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    name = db.Column(db.String(50), nullable=False, unique=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    parts = db.relationship('Part', backref='category', lazy='dynamic')

    def __repr__(self):
        return f'<PartCategory {self.name}>'


class Part(db.Model):
    """A selectable upgrade or tyre compound."""

    __tablename__ = 'parts'

    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    category_id = db.Column(db.String(36), db.ForeignKey('part_categories.id'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<Part {self.name}>'

    def summary(self) -> dict:
        category = self.category
        return {
            'id': self.id,
            'name': self.name,
            'category': {'id': category.id, 'name': category.name} if category else None,
        }
