"""
Shared fixtures for the match engine tests.
"""

import pytest

from matching.logic import (
    InMemoryCacheStore,
    InMemoryCatalogStore,
    InMemoryProfileStore,
    MatchCache,
    MatchEngine,
    Program,
    Requirement,
    StudentPreferences,
)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _make_program(
    program_id,
    field_id="ENG",
    country_id="NL",
    min_aggregate_score=None,
    requirements=(),
):
    return Program(
        id=program_id,
        name=f"Program {program_id}",
        university_name="Test University",
        degree_type="BSc",
        min_aggregate_score=min_aggregate_score,
        field_id=field_id,
        country_id=country_id,
        requirements=list(requirements),
    )


@pytest.fixture
def make_program():
    return _make_program


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_programs():
    """A small catalog covering OR-groups, critical requirements and preferences."""
    return [
        _make_program(
            "p-med",
            field_id="MED",
            country_id="NL",
            min_aggregate_score=36,
            requirements=[
                Requirement(required_course="MATH", required_level="HL", min_grade=5, is_critical=True),
                Requirement(required_course="CHEM", required_level="HL", min_grade=6, or_group_id="sci"),
                Requirement(required_course="BIO", required_level="HL", min_grade=6, or_group_id="sci"),
            ],
        ),
        _make_program(
            "p-eng",
            field_id="ENG",
            country_id="DE",
            min_aggregate_score=30,
            requirements=[
                Requirement(required_course="MATH", required_level="HL", min_grade=6),
                Requirement(required_course="PHYS", required_level="SL", min_grade=5),
            ],
        ),
        _make_program("p-art", field_id="ART", country_id="NL"),
        _make_program(
            "p-law",
            field_id="LAW",
            country_id="UK",
            min_aggregate_score=40,
            requirements=[
                Requirement(required_course="ENG", required_level="HL", min_grade=7, is_critical=True),
            ],
        ),
    ]


@pytest.fixture
def profile_store():
    store = InMemoryProfileStore()
    store.save_profile(
        "s1",
        [
            {"course_id": "MATH", "course_name": "Mathematics", "level": "HL", "grade": 6},
            {"course_id": "BIO", "course_name": "Biology", "level": "HL", "grade": 5},
            {"course_id": "PHYS", "course_name": "Physics", "level": "SL", "grade": 5},
        ],
        StudentPreferences(
            aggregate_score=38,
            preferred_field_ids={"MED"},
            preferred_country_ids={"NL"},
        ),
    )
    return store


@pytest.fixture
def catalog_store(sample_programs):
    return InMemoryCatalogStore(sample_programs)


@pytest.fixture
def engine(profile_store, catalog_store):
    return MatchEngine(profile_store, catalog_store)


@pytest.fixture
def cache_store(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def match_cache(engine, cache_store):
    return MatchCache(engine, cache_store, wait_timeout=2.0, poll_interval=0.01)
