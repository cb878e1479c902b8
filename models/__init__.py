"""
SQLAlchemy models for the FridayGT race organiser.
"""
from .user import User
from .catalog import Track, PartCategory, Part
from .car import Car, CarBuild
from .race import Race, RaceMember
from .run_list import RunList, RunListEntry, RunListEdit
from .lap_time import LapTime
from .note import Note, NoteVote
from .audit_log import AuditLog

__all__ = [
    'User',
    'Track',
    'PartCategory',
    'Part',
    'Car',
    'CarBuild',
    'Race',
    'RaceMember',
    'RunList',
    'RunListEntry',
    'RunListEdit',
    'LapTime',
    'Note',
    'NoteVote',
    'AuditLog',
]
