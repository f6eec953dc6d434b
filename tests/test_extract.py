from tardiness.extract import extract_from_paragraphs, extract_from_tables


def test_tables_skip_headers_and_empty_rows():
    tables = [
        [
            ["م", "الاسم", "رقم الهاتف"],
            ["", "", ""],
            ["1", "أحمد علي", "96891234567"],
            ["2", "سالم خميس", ""],
            ["3", "", "96800000000"],
        ],
        [
            ["Ahmed Said", "+968 9000 1111"],
        ],
    ]
    students = extract_from_tables(tables)

    assert [(s.name, s.phone) for s in students] == [
        ("أحمد علي", "96891234567"),
        ("سالم خميس", ""),
        ("Ahmed Said", "96890001111"),
    ]
    assert all(s.grade == "" and s.class_name == "" for s in students)


def test_tables_never_emit_empty_names():
    tables = [[["1", "2"], ["96891234567"], ["5/أ", "x"], [" ", None]]]
    assert extract_from_tables(tables) == []


def test_candidates_get_distinct_ids():
    students = extract_from_tables([[["أحمد علي"], ["أحمد علي"]]])
    assert len(students) == 2
    assert students[0].id != students[1].id


def test_paragraphs_need_name_and_phone_together():
    paragraphs = [
        "الطالب أحمد علي هاتف ولي الأمر 96891234567",
        "قائمة الطلاب المتأخرين",
        "96812345678",
        "",
    ]
    students = extract_from_paragraphs(paragraphs)

    assert len(students) == 1
    assert students[0].phone == "96891234567"
    assert students[0].name.startswith("الطالب أحمد علي")


def test_paragraph_with_short_digits_is_ignored():
    assert extract_from_paragraphs(["أحمد علي 1234567"]) == []
