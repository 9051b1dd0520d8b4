import pytest

from notes_api.errors import NotFound, ValidationError
from notes_api.services import NotesService
from notes_api.stores import NoteStore


@pytest.fixture
def notes(session, clock):
    return NotesService(NoteStore(session, clock=clock))


@pytest.fixture
def ann(make_user):
    return make_user()


@pytest.fixture
def bob(make_user):
    return make_user(email="bob@x.com", name="Bob")


def test_create_then_get_round_trip(notes, ann):
    created = notes.create(ann.id, "T", "C")
    fetched = notes.get(ann.id, created.id)

    assert fetched.title == "T"
    assert fetched.content == "C"
    assert fetched.user_id == ann.id
    assert fetched.created_at == fetched.updated_at


def test_create_trims_title_and_defaults_content(notes, ann):
    note = notes.create(ann.id, "  Shopping  ", None)

    assert note.title == "Shopping"
    assert note.content == ""


@pytest.mark.parametrize("title", [None, "", "   ", "\t\n"])
def test_blank_title_rejected_on_create(notes, ann, title):
    with pytest.raises(ValidationError) as excinfo:
        notes.create(ann.id, title, "C")
    assert excinfo.value.message == "Title is required"


@pytest.mark.parametrize("title", ["", "   "])
def test_blank_title_rejected_on_update(notes, ann, title):
    note = notes.create(ann.id, "T", "C")

    with pytest.raises(ValidationError):
        notes.update(ann.id, note.id, title, "C2")
    assert notes.get(ann.id, note.id).title == "T"


def test_title_length_limit(notes, ann):
    accepted = notes.create(ann.id, "x" * 255, "")
    assert len(accepted.title) == 255

    with pytest.raises(ValidationError) as excinfo:
        notes.create(ann.id, "x" * 256, "")
    assert "255" in excinfo.value.message

    with pytest.raises(ValidationError):
        notes.update(ann.id, accepted.id, "y" * 256, "")


def test_update_bumps_updated_at(notes, ann, clock):
    note = notes.create(ann.id, "T", "C")
    created_at = note.created_at

    clock.advance(60)
    updated = notes.update(ann.id, note.id, "T2", None)

    assert updated.title == "T2"
    assert updated.content == ""
    assert updated.created_at == created_at
    assert updated.updated_at > updated.created_at


def test_new_and_updated_notes_list_first(notes, ann, clock):
    older = notes.create(ann.id, "older", "")
    clock.advance()
    newer = notes.create(ann.id, "newer", "")
    assert notes.list(ann.id)[0].id == newer.id

    clock.advance()
    notes.update(ann.id, older.id, "older, edited", "")
    assert [n.id for n in notes.list(ann.id)] == [older.id, newer.id]


def test_other_users_notes_are_not_found(notes, ann, bob):
    note = notes.create(ann.id, "Ann's", "private")

    with pytest.raises(NotFound):
        notes.get(bob.id, note.id)
    with pytest.raises(NotFound):
        notes.update(bob.id, note.id, "hijacked", "")
    with pytest.raises(NotFound):
        notes.delete(bob.id, note.id)

    assert notes.list(bob.id) == []
    assert notes.get(ann.id, note.id).title == "Ann's"


def test_foreign_and_missing_ids_fail_identically(notes, ann, bob):
    note = notes.create(ann.id, "Ann's", "")

    with pytest.raises(NotFound) as foreign:
        notes.get(bob.id, note.id)
    with pytest.raises(NotFound) as missing:
        notes.get(bob.id, note.id + 1000)

    assert foreign.value.to_dict() == missing.value.to_dict()


def test_delete(notes, ann):
    note = notes.create(ann.id, "T", "C")

    assert notes.delete(ann.id, note.id) is None
    with pytest.raises(NotFound):
        notes.get(ann.id, note.id)
    with pytest.raises(NotFound):
        notes.delete(ann.id, note.id)
