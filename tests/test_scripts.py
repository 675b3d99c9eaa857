"""
Tests for the administrative scripts.
"""
import pytest
from sqlalchemy import select

from conftest import make_note, make_user
from models.models import Note, Subject
from scripts.cleanup_orphaned_notes import find_orphaned_notes, remove_notes
from scripts.sample_notes import SAMPLE_NOTES, add_sample_notes, remove_sample_notes
from scripts.seed_db import DEFAULT_SUBJECTS, seed_subjects, subject_id_for


def test_seed_subjects_is_idempotent(db):
    assert seed_subjects(db) == len(DEFAULT_SUBJECTS)
    assert seed_subjects(db) == 0
    ids = set(db.execute(select(Subject.id)).scalars())
    assert {"cs", "math", "phys"} <= ids


def test_seed_subjects_per_domain(db):
    seed_subjects(db)
    assert seed_subjects(db, "example.edu") == len(DEFAULT_SUBJECTS)
    assert subject_id_for("MATH", "example.edu") == "example-edu-math"
    assert db.get(Subject, "example-edu-math").college_domain == "example.edu"


def test_sample_notes_round_trip(db, storage, alice):
    seed_subjects(db)

    added = add_sample_notes(db, storage)
    assert len(added) == len(SAMPLE_NOTES)
    assert add_sample_notes(db, storage) == []
    assert len(storage.objects) == len(SAMPLE_NOTES)

    notes = db.execute(select(Note)).scalars().all()
    assert all(n.uploader_id == alice.id and n.subject_id for n in notes)

    assert remove_sample_notes(db, storage) == len(SAMPLE_NOTES)
    assert db.execute(select(Note)).scalars().all() == []
    assert storage.objects == {}


def test_sample_notes_need_a_user(db, storage):
    with pytest.raises(LookupError):
        add_sample_notes(db, storage)


def test_cleanup_removes_only_orphans(db, storage):
    user = make_user(db)
    kept = make_note(db, user, title="Kept", storage=storage, minutes=1)
    lost = make_note(db, user, title="Lost", minutes=2)

    orphaned, valid = find_orphaned_notes(db, storage)
    assert [row[0] for row in orphaned] == [lost.id]
    assert [row[0] for row in valid] == [kept.id]

    assert remove_notes(db, [lost.id]) == 1
    assert db.execute(select(Note.id)).scalars().all() == [kept.id]
