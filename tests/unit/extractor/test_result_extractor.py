"""
Unit tests for ResultExtractor.
"""

from unittest.mock import patch

import pytest

from seeresult.extractor import ResultExtractor, ResultRecord, SubjectRecord


def _row(*cells: str) -> str:
    return "<tr>" + "".join(f"<td>{cell}</td>" for cell in cells) + "</tr>"


@pytest.mark.unit
class TestGpaExtraction:
    """GPA label handling."""

    def test_gpa_with_irregular_spacing(self):
        html = "<b>GRADE POINT AVERAGE (GPA) :   3.45</b>"
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").gpa == "3.45"

    def test_gpa_without_spaces_around_colon(self):
        html = "<p><b>GRADE POINT AVERAGE (GPA):2.85</b></p>"
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").gpa == "2.85"

    def test_gpa_label_is_case_insensitive(self):
        html = "<b>Grade Point Average (GPA) : 3.05 </b>"
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").gpa == "3.05"

    def test_no_bold_label_gives_none(self):
        html = "<p>GRADE POINT AVERAGE (GPA) : 3.45</p><b>SYMBOL NO</b>"
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").gpa is None

    def test_first_matching_label_wins(self):
        html = (
            "<b>GRADE POINT AVERAGE (GPA) : 3.45</b>"
            "<b>GRADE POINT AVERAGE (GPA) : 1.20</b>"
        )
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").gpa == "3.45"

    def test_label_without_gpa_suffix_is_kept_verbatim(self):
        html = "<b>GRADE POINT AVERAGE 3.10</b>"
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").gpa == "GRADE POINT AVERAGE 3.10"

    def test_label_with_nested_markup(self):
        html = "<b>GRADE POINT AVERAGE (GPA) : <span>3.65</span></b>"
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").gpa == "3.65"


@pytest.mark.unit
class TestSubjectExtraction:
    """Six-cell row handling."""

    def test_sample_gradesheet(self, gradesheet_html):
        record = ResultExtractor().extract(gradesheet_html, "12345678A", "2062-01-15")

        assert [subject.subject_name for subject in record.subjects] == [
            "COMP. ENGLISH (TH)",
            "COMP. NEPALI",
            "COMP. MATHEMATICS",
        ]
        assert record.subjects[0] == SubjectRecord(
            subject_name="COMP. ENGLISH (TH)",
            credit_hours="4",
            grade="A",
            grade_point="3.6",
            final_grade="A",
            remarks="",
        )
        assert record.subjects[2].remarks == "Distinction"

    def test_rows_with_other_cell_counts_are_skipped(self):
        html = (
            "<table>"
            + _row("ONLY", "FIVE", "CELLS", "IN", "ROW")
            + _row("SCIENCE", "4", "A", "3.6", "A", "")
            + _row("SEVEN", "1", "2", "3", "4", "5", "6")
            + _row("TOTAL")
            + "</table>"
        )
        record = ResultExtractor().extract(html, "12345678A", "2000-01-01")

        assert len(record.subjects) == 1
        assert record.subjects[0].subject_name == "SCIENCE"

    def test_document_order_is_preserved(self):
        names = ["SOCIAL", "SCIENCE", "OPT. I", "OPT. II"]
        html = "<table>" + "".join(_row(name, "4", "B", "3.0", "B", "") for name in names) + "</table>"

        record = ResultExtractor().extract(html, "12345678A", "2000-01-01")
        assert [subject.subject_name for subject in record.subjects] == names

    def test_rows_across_multiple_tables(self):
        html = (
            "<table>" + _row("FIRST", "4", "A", "3.6", "A", "") + "</table>"
            "<table>" + _row("SECOND", "2", "B", "3.0", "B", "") + "</table>"
        )
        record = ResultExtractor().extract(html, "12345678A", "2000-01-01")
        assert [subject.subject_name for subject in record.subjects] == ["FIRST", "SECOND"]

    def test_only_subject_name_is_whitespace_collapsed(self):
        html = "<table>" + _row(" HEALTH \n\t  POP. ", " 4 ", " B+ ", " 3.2 ", "  B  +  ", "  see   note  ") + "</table>"
        subject = ResultExtractor().extract(html, "12345678A", "2000-01-01").subjects[0]

        assert subject.subject_name == "HEALTH POP."
        assert subject.credit_hours == "4"
        assert subject.final_grade == "B  +"
        assert subject.remarks == "see   note"

    def test_omitted_end_tags(self):
        html = (
            "<table>"
            "<tr><td>SCIENCE<td>4<td>A<td>3.6<td>A<td>"
            "<tr><td>SOCIAL<td>4<td>B<td>3.0<td>B<td>Good"
            "</table>"
        )
        subjects = ResultExtractor().extract(html, "12345678A", "2000-01-01").subjects

        assert subjects == (
            SubjectRecord("SCIENCE", "4", "A", "3.6", "A", ""),
            SubjectRecord("SOCIAL", "4", "B", "3.0", "B", "Good"),
        )

    def test_rows_outside_tables_are_ignored(self):
        html = "<div>" + "".join(f"<span>{cell}</span>" for cell in "abcdef") + "</div>"
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").subjects == ()

    def test_no_matching_rows_yields_empty_sequence(self):
        record = ResultExtractor().extract("<table><tr><th>No result found</th></tr></table>", "1", "2")
        assert record.subjects == ()


@pytest.mark.unit
class TestIdentityExtraction:
    """Symbol and date of birth restated in the info block."""

    def test_values_are_read_from_info_block(self):
        html = '<div class="lgfonts">SYMBOL NO: 87654321B DATE OF BIRTH : 2061/12/30</div>'
        record = ResultExtractor().extract(html, "12345678A", "2000-01-01")

        assert record.symbol == "87654321B"
        assert record.dob == "2061/12/30"

    def test_fallback_without_info_block(self):
        record = ResultExtractor().extract("<html><body>No record</body></html>", "12345678A", "2000-01-01")

        assert record.symbol == "12345678A"
        assert record.dob == "2000-01-01"

    def test_each_field_falls_back_independently(self):
        html = '<span class="lgfonts">SYMBOL NO: 11223344</span>'
        record = ResultExtractor().extract(html, "12345678A", "2000-01-01")

        assert record.symbol == "11223344"
        assert record.dob == "2000-01-01"

    def test_info_text_is_concatenated_across_elements(self):
        html = (
            '<td class="lgfonts">SYMBOL NO: 55667788C </td>'
            "<p>DATE OF BIRTH: 1999-09-09</p>"
            '<td class="lgfonts">DATE OF BIRTH: 2062.05.04</td>'
        )
        record = ResultExtractor().extract(html, "12345678A", "2000-01-01")

        assert record.symbol == "55667788C"
        assert record.dob == "2062.05.04"

    def test_mixed_date_separators(self):
        html = '<div class="lgfonts">date of birth 2062-05.04</div>'
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").dob == "2062-05.04"

    def test_nearest_date_after_label_is_used(self):
        html = '<div class="lgfonts">DATE OF BIRTH: 2062-01-15 PRINTED ON 2081-03-01</div>'
        assert ResultExtractor().extract(html, "12345678A", "2000-01-01").dob == "2062-01-15"

    def test_devanagari_digits_are_not_identity_values(self):
        html = (
            '<div class="lgfonts">क्रमांक १२३४५६७८ SYMBOL 12345678Aको '
            "DATE OF BIRTH : २०६२-०१-१५ / 2062-01-15</div>"
        )
        record = ResultExtractor().extract(html, "99999999", "2000-01-01")

        assert record.symbol == "12345678A"
        assert record.dob == "2062-01-15"

    def test_symbol_requires_word_boundary(self):
        html = '<div class="lgfonts">REF 12345678AB</div>'
        assert ResultExtractor().extract(html, "99999999", "2000-01-01").symbol == "99999999"


@pytest.mark.unit
class TestRobustness:
    """Malformed input never raises."""

    @pytest.mark.parametrize("html", ["", "<<<>>>", "<table><tr><td>unclosed", "\x00\x01 binary-ish"])
    def test_malformed_html(self, html):
        record = ResultExtractor().extract(html, "12345678A", "2000-01-01")

        assert isinstance(record, ResultRecord)
        assert record.gpa is None
        assert record.subjects == ()

    def test_parser_failure_degrades_to_submitted_values(self):
        with patch("seeresult.extractor.result_extractor.BeautifulSoup", side_effect=RuntimeError("boom")):
            record = ResultExtractor().extract("<b>GRADE POINT AVERAGE (GPA): 3.0</b>", "12345678A", "2000-01-01")

        assert record == ResultRecord(symbol="12345678A", dob="2000-01-01", gpa=None, subjects=())

    @pytest.mark.asyncio
    async def test_extract_async_matches_sync(self, gradesheet_html):
        extractor = ResultExtractor()
        sync_record = extractor.extract(gradesheet_html, "12345678A", "2062-01-15")
        async_record = await extractor.extract_async(gradesheet_html, "12345678A", "2062-01-15")

        assert async_record == sync_record


@pytest.mark.unit
def test_to_dict_uses_wire_names(gradesheet_html):
    payload = ResultExtractor().extract(gradesheet_html, "12345678A", "2062-01-15").to_dict()

    assert payload["symbol"] == "12345678A"
    assert payload["dob"] == "2062-01-15"
    assert payload["gpa"] == "3.45"
    assert payload["subjects"][1] == {
        "subject": "COMP. NEPALI",
        "creditHours": "4",
        "grade": "B+",
        "gradePoint": "3.2",
        "finalGrade": "B+",
        "remarks": "",
    }
