from __future__ import annotations

from attendance_import.csvfile.dates import DateNormalizer
from attendance_import.csvfile.header import resolve_header
from attendance_import.csvfile.reader import read_csv_text, split_csv_line
from attendance_import.models.catalogs import SPECIAL_GUEST_IDS, Program, ProgramCatalog
from attendance_import.services.template import (
    TEMPLATE_HEADER,
    build_template_csv,
    date_format_examples,
)


def test_date_format_examples():
    ex = date_format_examples(2026)
    assert ex.iso == "2026-04-29"
    assert ex.numeric == "4/29/2026"
    assert ex.numeric_with_time == "4/29/2026 11:53:58 AM"


def test_template_structure():
    lines = build_template_csv(2026).split("\n")
    assert lines[0] == TEMPLATE_HEADER
    assert len(lines) == 1 + len(Program) + len(SPECIAL_GUEST_IDS)
    assert lines[1] == "ATT001,123,1,Meal,2026-01-15"


def test_template_is_importable_and_covers_catalogs():
    lines = read_csv_text(build_template_csv(2025))
    header = resolve_header(lines[0])
    dates = DateNormalizer()
    programs = ProgramCatalog()
    seen_programs = set()
    seen_specials = set()
    for line in lines[1:]:
        fields = split_csv_line(line)
        assert dates.parse(header.get(fields, "date_submitted")) is not None
        program = programs.normalize(header.get(fields, "program"))
        assert program is not None
        seen_programs.add(program)
        guest_id = header.get(fields, "guest_id")
        if guest_id in SPECIAL_GUEST_IDS:
            assert program is Program.MEAL
            seen_specials.add(guest_id)
    assert seen_programs == set(Program)
    assert seen_specials == set(SPECIAL_GUEST_IDS)
