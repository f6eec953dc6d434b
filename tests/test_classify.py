import random
import re

import pytest

from tardiness.classify import FieldKind, classify_cell, classify_row, is_header_row


@pytest.mark.parametrize("token", ["96891234567", "+968 9123 4567", "9123-4567", "0096891234567"])
def test_phone_tokens(token):
    assert classify_cell(token) is FieldKind.PHONE


@pytest.mark.parametrize("token", ["1", "2", "17", "1234567", "+968 12"])
def test_short_numbers_are_not_phones(token):
    assert classify_cell(token) is not FieldKind.PHONE


@pytest.mark.parametrize("token", ["أحمد علي", "محمد سالم البلوشي", "Ahmed Ali", "Sarah"])
def test_name_tokens(token):
    assert classify_cell(token) is FieldKind.NAME


@pytest.mark.parametrize("token", ["علي", "Ali", "5/أ", "Ahmed 2", "", "   "])
def test_unknown_tokens(token):
    assert classify_cell(token) is FieldKind.UNKNOWN


def test_grade_and_class_are_never_produced():
    for token in ["الصف الخامس", "5/أ", "Grade 5", "Class A"]:
        assert classify_cell(token) not in (FieldKind.GRADE, FieldKind.CLASS)


def _expected(token: str) -> FieldKind:
    t = token.strip()
    if not t:
        return FieldKind.UNKNOWN
    if re.search(r"[0-9+\s-]{8,15}", t) and len(re.sub(r"[^0-9]", "", t)) >= 8:
        return FieldKind.PHONE
    if re.fullmatch(r"[\u0600-\u06FF\s]{5,}", t) or re.fullmatch(r"[a-zA-Z\s]{5,}", t):
        return FieldKind.NAME
    return FieldKind.UNKNOWN


def test_classification_matches_definition_on_generated_tokens():
    rng = random.Random(20240101)
    alphabet = "0123456789+- abcXYZأحمدعلي/."
    for _ in range(2000):
        token = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 18)))
        assert classify_cell(token) is _expected(token), token


def test_header_rows():
    assert is_header_row(["م", "الاسم", "الهاتف"])
    assert is_header_row(["#", "Student Name", "Phone"])
    assert not is_header_row(["1", "أحمد علي", "96891234567"])


def test_row_first_name_and_first_phone_win():
    name, phone = classify_row(["1", "أحمد علي", "سالم محمد", "968 9123 4567", "96899999999"])
    assert name == "أحمد علي"
    assert phone == "96891234567"


def test_row_without_phone():
    assert classify_row(["3", "Mohammed Said", "5/A"]) == ("Mohammed Said", "")
