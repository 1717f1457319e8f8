"""
Unit tests for the fuzzy hospital lookups.
"""

import pytest

from context import selectors


class TestPatientLookup:

    @pytest.mark.parametrize("query", ["John Doe", "john", "Doe", "Jon Doe", "Mr. John Doe"])
    def test_close_names_resolve(self, hospital, query):
        assert selectors.get_patient_by_name(hospital, query)["id"] == "P-1024"

    @pytest.mark.parametrize("query", ["Jane Doe", "John Smith", "Zed Quixote", "Mr.", ""])
    def test_different_names_do_not_resolve(self, hospital, query):
        """A shared first or last name is not enough."""
        assert selectors.get_patient_by_name(hospital, query) is None

    def test_candidates_respect_threshold(self, hospital):
        candidates = selectors.find_patient_candidates(hospital, "Jane Doe")

        assert candidates == []


class TestDoctorLookup:

    @pytest.mark.parametrize("query, expected", [
        ("Dr. Chen", "Dr. Emily Chen"),
        ("dr chen", "Dr. Emily Chen"),
        ("Emily Chen", "Dr. Emily Chen"),
        ("Doctor Lopez", "Dr. Maria Lopez"),
        ("Dr. Patel", "Dr. Raj Patel"),
    ])
    def test_known_doctors(self, hospital, query, expected):
        assert selectors.resolve_doctor(hospital, query)["name"] == expected

    @pytest.mark.parametrize("query", ["Dr. Nobody", "Dr. Smith", "Dr. Who", "Dr.", None])
    def test_unknown_doctors(self, hospital, query):
        assert selectors.resolve_doctor(hospital, query) is None


def test_next_id_continues_numeric_tail():
    assert selectors.next_id(["P-1024", "P-9921"], "P-", start=1000) == "P-9922"
    assert selectors.next_id([], "APT-", start=1) == "APT-1"
