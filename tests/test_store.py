import json

import pytest
from sqlalchemy import func, select

from households_etl import store
from households_etl.models import Confidence, CorrelationId, HouseholdCandidate, PersonCandidate
from households_etl.pipeline import process_text
from households_etl.store import (
    CommitError,
    Family,
    ImportCommitter,
    Person,
    commit_review_payload,
    create_session_factory,
)

EXTRACT = "\n".join(
    [
        "First Name,Last Name,Email,Mobile",
        "John,Smith,j@x.com,",
        "Jane,Smith,,555-1111",
        "Tim,Smith,,",
        "Amy,Tan,a@x.com,",
    ]
)


@pytest.fixture
def session_factory():
    return create_session_factory("sqlite+pysqlite:///:memory:")


def _count(session_factory, model):
    with session_factory() as db:
        return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_commit_persists_families_and_people(session_factory):
    committer = ImportCommitter(session_factory)
    result = process_text(EXTRACT)

    imported = committer.commit(result.families)

    assert sorted(ref.name for ref in imported.families) == ["Smith Family", "Tan Family"]
    assert {ref.name for ref in imported.individuals} == {"John Smith", "Jane Smith", "Tim Smith", "Amy Tan"}
    assert all(isinstance(ref.id, int) for ref in imported.families + imported.individuals)
    assert _count(session_factory, Family) == 2
    assert _count(session_factory, Person) == 4

    with session_factory() as db:
        john = db.execute(select(Person).where(Person.first_name == "John")).scalar_one()
        jane = db.execute(select(Person).where(Person.first_name == "Jane")).scalar_one()
        tim = db.execute(select(Person).where(Person.first_name == "Tim")).scalar_one()
        assert (john.is_main_contact_1, john.is_main_contact_2) == (True, False)
        assert (jane.is_main_contact_1, jane.is_main_contact_2) == (False, True)
        assert (tim.is_main_contact_1, tim.is_main_contact_2) == (False, False)
        assert john.family_id == jane.family_id == tim.family_id
        assert john.family.family_name == "Smith Family"


def test_commit_rolls_back_whole_batch_on_family_failure(session_factory):
    committer = ImportCommitter(session_factory)
    good = process_text(EXTRACT).families[0]
    broken = HouseholdCandidate(
        id=CorrelationId("household_x"),
        suggested_name=None,
        members=[PersonCandidate(correlation_id=CorrelationId("p"), last_name="Ghost")],
        confidence=Confidence.HIGH,
    )

    with pytest.raises(CommitError):
        committer.commit([good, broken])

    assert _count(session_factory, Family) == 0
    assert _count(session_factory, Person) == 0


def test_commit_rolls_back_when_person_insert_fails(session_factory, monkeypatch):
    committer = ImportCommitter(session_factory)
    households = process_text(EXTRACT).families
    real_person = store.Person
    calls = {"count": 0}

    def flaky_person(**kwargs):
        calls["count"] += 1
        if calls["count"] == 3:
            raise RuntimeError("disk full")
        return real_person(**kwargs)

    monkeypatch.setattr(store, "Person", flaky_person)

    with pytest.raises(CommitError, match="disk full"):
        committer.commit(households)

    monkeypatch.undo()
    assert _count(session_factory, Family) == 0
    assert _count(session_factory, Person) == 0


@pytest.mark.parametrize("households", [[], None, "families"])
def test_commit_rejects_invalid_batches(session_factory, households):
    with pytest.raises(CommitError):
        ImportCommitter(session_factory).commit(households)


def test_commit_review_payload_returns_imported_summary(session_factory):
    committer = ImportCommitter(session_factory)
    payload = json.loads(json.dumps(process_text(EXTRACT).to_dict()))
    payload["families"][0]["confirmed"] = True

    summary = commit_review_payload(payload, committer, confirmed_only=True)

    assert set(summary) == {"imported"}
    assert len(summary["imported"]["families"]) == 1
    assert summary["imported"]["families"][0]["name"] == payload["families"][0]["suggestedName"]
    assert _count(session_factory, Family) == 1


def test_commit_review_payload_rejects_missing_families(session_factory):
    with pytest.raises(CommitError):
        commit_review_payload({"households": []}, ImportCommitter(session_factory))


def test_existing_labels_feed_already_imported_flags(session_factory):
    committer = ImportCommitter(session_factory)
    committer.commit(process_text("First,Last,Email\nJohn,Smith,j@x.com").families)

    labels = committer.existing_household_labels()
    assert labels == ["Smith Family"]

    rerun = process_text(EXTRACT, existing_labels=labels)
    flags = {h.suggested_name: h.already_imported for h in rerun.families}
    assert flags == {"Smith Family": True, "Tan Family": False}
