"""
Test transcript normalization.
"""

from matching.logic import CourseLevel, CourseRecord, normalize_transcript


def test_dict_rows_are_normalized():
    transcript = normalize_transcript([
        {"course_id": "MATH", "course_name": "Mathematics", "level": "HL", "grade": 6},
        {"course_id": "ENG", "level": "sl", "grade": "5"},
    ])

    assert set(transcript) == {"MATH", "ENG"}
    assert transcript["MATH"].level == CourseLevel.HL
    assert transcript["MATH"].grade == 6
    assert transcript["MATH"].course_name == "Mathematics"
    assert transcript["ENG"].level == CourseLevel.SL
    assert transcript["ENG"].grade == 5


def test_course_record_rows_are_normalized():
    transcript = normalize_transcript([
        CourseRecord(course_id="CHEM", course_name="Chemistry", level="HL", grade=7),
    ])

    assert transcript["CHEM"].grade == 7


def test_higher_level_wins_over_higher_grade():
    transcript = normalize_transcript([
        {"course_id": "MATH", "level": "SL", "grade": 7},
        {"course_id": "MATH", "level": "HL", "grade": 5},
    ])

    assert transcript["MATH"].level == CourseLevel.HL
    assert transcript["MATH"].grade == 5


def test_best_grade_kept_within_level():
    transcript = normalize_transcript([
        {"course_id": "MATH", "level": "HL", "grade": 6},
        {"course_id": "MATH", "level": "HL", "grade": 4},
    ])

    assert transcript["MATH"].grade == 6


def test_malformed_rows_are_skipped():
    transcript = normalize_transcript([
        {"course_id": None, "level": "HL", "grade": 6},
        {"course_id": "A", "level": "AP", "grade": 6},
        {"course_id": "B", "level": "HL", "grade": 0},
        {"course_id": "C", "level": "HL", "grade": 8},
        {"course_id": "D", "level": "HL", "grade": None},
        {"course_id": "E", "level": "HL", "grade": True},
        {"course_id": "F", "level": "HL", "grade": "abc"},
        {"course_id": "G", "level": "HL", "grade": 5.5},
        {"course_id": "OK", "level": "HL", "grade": 4},
    ])

    assert list(transcript) == ["OK"]


def test_empty_input():
    assert normalize_transcript([]) == {}
    assert normalize_transcript(None) == {}
