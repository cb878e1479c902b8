"""Catalogue seeding: tyre compounds and a starter set of tracks."""
from __future__ import annotations

import logging
import re

import config
from database import db
from models import Part, PartCategory, Track

logger = logging.getLogger(__name__)

STARTER_TRACKS = [
    ('Brands Hatch Grand Prix Circuit', 'United Kingdom', 'circuit'),
    ('Suzuka Circuit', 'Japan', 'circuit'),
    ('Nurburgring Nordschleife', 'Germany', 'circuit'),
    ('Tokyo Expressway - Central Outer Loop', 'Japan', 'city'),
    ('Fishermans Ranch', 'United States', 'dirt'),
    ('Daytona Tri-Oval', 'United States', 'oval'),
]


def slugify(name: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')


def seed_tyres() -> int:
    """Create the tyre category and every compound that is missing. Returns the number created."""
    category = PartCategory.query.filter_by(name=config.TYRE_CATEGORY_NAME).first()
    if category is None:
        category = PartCategory(name=config.TYRE_CATEGORY_NAME, display_order=1)
        db.session.add(category)
        db.session.flush()

    existing = {part.name for part in category.parts.all()}
    created = 0
    for name in config.TYRE_PART_NAMES:
        if name not in existing:
            db.session.add(Part(category_id=category.id, name=name))
            created += 1
    db.session.commit()
    if created:
        logger.info('Seeded %d tyre compounds', created)
    return created


def seed_tracks(tracks=STARTER_TRACKS) -> int:
    created = 0
    for name, location, category in tracks:
        slug = slugify(name)
        if Track.query.filter_by(slug=slug).first() is None:
            db.session.add(Track(name=name, slug=slug, location=location, category=category))
            created += 1
    db.session.commit()
    return created
