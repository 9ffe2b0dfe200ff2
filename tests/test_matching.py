import pytest

from households_etl.matching import (
    is_already_imported,
    label_parts,
    mark_already_imported,
    names_match,
    normalize_name,
)
from households_etl.models import Confidence, CorrelationId, HouseholdCandidate, PersonCandidate


def test_normalize_name_strips_punctuation_apostrophes_and_dashes():
    assert normalize_name("  O’Brien-Smith, (Dr.) John! ") == "obrien smith dr john"
    assert normalize_name("Smith   Family") == "smith family"
    assert normalize_name("") == ""


@pytest.mark.parametrize(
    "left, right, expected",
    [
        ("Smith Family", "smith family", True),
        ("O'Brien Family", "OBrien Family", True),
        ("Smith-Jones", "smith jones", True),
        ("Tan Family", "Tan", True),
        ("SMITH, John and Jane", "Smith, John", True),
        ("Smith, Jane and John", "Smith, John", True),
        ("Smith, Jonathan", "Smith, Jon", True),
        ("Nguyen, Elizabeth", "Nguyen, Mary Eliza", True),
        ("Smith, Robert", "Smith, Alice", False),
        ("Smith, Bob", "Smithers, Bob", False),
        ("Lee, A", "Lee, B", False),
        ("Smith, Andrew", "Smith, John and Jane", False),
        ("Smith, Jon and Sue", "Smith, Jonathan", True),
        ("Smith Family", "Jones Family", False),
        ("", "Smith", False),
        ("Smith", "", False),
        ("", "", False),
    ],
)
def test_names_match(left, right, expected):
    assert names_match(left, right) is expected
    assert names_match(right, left) is expected


def test_is_already_imported_scans_all_labels():
    assert is_already_imported("Smith Family", ["Jones Family", "SMITH FAMILY"]) is True
    assert is_already_imported("Smith Family", []) is False


def test_mark_already_imported_returns_new_households():
    member = PersonCandidate(correlation_id=CorrelationId("p"), first_name="John", last_name="Smith")
    households = [
        HouseholdCandidate(
            id=CorrelationId("h0"), suggested_name="Smith Family", members=[member], confidence=Confidence.HIGH
        ),
        HouseholdCandidate(
            id=CorrelationId("h1"), suggested_name="Brown Family", members=[member], confidence=Confidence.HIGH
        ),
    ]
    marked = mark_already_imported(households, ["smith family", ""])
    assert [h.already_imported for h in marked] == [True, False]
    assert households[0].already_imported is False


def test_label_parts_reads_directory_labels_without_joiner():
    assert label_parts("O'Brien, John, Mary and Jane") == ("obrien", ["john", "mary", "jane"])
    assert label_parts("Smith Family") == ("smith family", [])
    assert label_parts("Smith,John and Jane") == ("smith", ["john", "jane"])
