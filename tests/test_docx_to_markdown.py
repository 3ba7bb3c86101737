import io

import pytest

from publish_ats.document_model import Cell, Paragraph, Row, Run, Table
from publish_ats.docx_to_markdown import (
    TranscodeState,
    blocks_to_markdown,
    classify_style,
    docx_to_markdown,
    format_run,
    format_runs,
    is_job_entry,
    render_table,
    split_job_entry,
)


def paragraph(text, style_id=None, **kwargs):
    return Paragraph(runs=(Run(text, **kwargs),), style_id=style_id)


def table(*rows):
    return Table(tuple(Row(tuple(Cell((text,)) for text in row)) for row in rows))


class TestStyleClassifier:
    @pytest.mark.parametrize("level", range(1, 7))
    def test_heading_prefix(self, level):
        markdown = blocks_to_markdown([paragraph("Section", f"Heading{level}")])
        assert markdown.startswith("#" * level + " Section")
        assert not markdown.startswith("#" * (level + 1))

    @pytest.mark.parametrize("style_id", ["Heading0", "Heading7", "Heading", "Normal"])
    def test_unparseable_heading_is_plain(self, style_id):
        assert blocks_to_markdown([paragraph("Text", style_id)]) == "Text\n\n"

    def test_only_first_title_is_document_title(self):
        markdown = blocks_to_markdown(
            [paragraph("Jane Doe", "Title"), paragraph("Again", "Title")]
        )
        assert markdown == "# Jane Doe\n\nAgain\n\n"

    def test_title_state_is_fresh_per_call(self):
        blocks = [paragraph("Jane Doe", "Title")]
        assert blocks_to_markdown(blocks) == blocks_to_markdown(blocks)

    def test_classify_style_updates_state(self):
        state = TranscodeState()
        assert classify_style("Title", state) == "# "
        assert state.title_seen
        assert classify_style("Title", state) == ""
        assert classify_style("Heading3", state) == "### "
        assert classify_style(None, state) == ""


class TestInlineStyling:
    def test_bold_and_italic(self):
        assert format_run(Run("x", bold=True)) == "**x**"
        assert format_run(Run("x", italic=True)) == "*x*"
        assert format_run(Run("x", bold=True, italic=True)) == "***x***"

    def test_whitespace_stays_outside_markers(self):
        assert format_run(Run(" Senior ", bold=True)) == " **Senior** "

    def test_empty_runs_are_skipped(self):
        block = Paragraph(runs=(Run("", bold=True), Run("text"), Run("", italic=True)))
        assert blocks_to_markdown([block]) == "text\n\n"

    def test_run_order_is_preserved(self):
        block = Paragraph(
            runs=(Run("Built "), Run("fast", bold=True), Run(" and "), Run("safe", italic=True))
        )
        assert blocks_to_markdown([block]) == "Built **fast** and *safe*\n\n"

    def test_neighbouring_runs_with_equal_styles_are_joined(self):
        block = Paragraph(runs=(Run("Senior ", bold=True), Run("Engineer", bold=True)))
        assert blocks_to_markdown([block]) == "**Senior Engineer**\n\n"

    def test_runs_split_mid_word_are_joined(self):
        runs = (Run("Kuber", italic=True), Run("netes", italic=True), Run(" rollout"))
        assert format_runs(runs) == "*Kubernetes* rollout"


class TestJobEntrySplitter:
    def test_detection_needs_dash_and_date(self):
        assert is_job_entry("Senior Engineer – Jan 2020")
        assert is_job_entry("Lead — September 2019 to Present")
        assert not is_job_entry("Senior Engineer - Jan 2020")
        assert not is_job_entry("Senior Engineer – Acme Corp")
        assert not is_job_entry("Joined in Jan 2020")

    def test_split_at_first_italic_run(self):
        runs = (
            Run("Senior Engineer – "),
            Run("Jan 2020", italic=True),
            Run(" – Present"),
        )
        assert split_job_entry(runs) == ("Senior Engineer", "Jan 2020 – Present")

    def test_job_entry_output(self):
        block = Paragraph(
            runs=(Run("Senior Engineer – "), Run("Jan 2020", italic=True))
        )
        markdown = blocks_to_markdown([block])
        lines = markdown.splitlines()

        assert lines[0] == "#### Senior Engineer"
        assert lines[1] == "*Jan 2020*"

    def test_without_italic_run_date_line_is_empty(self):
        markdown = blocks_to_markdown([paragraph("Engineer – Jan 2020")])
        assert markdown == "#### Engineer – Jan 2020\n\n\n"


class TestTableRenderer:
    def test_two_rows_three_columns(self):
        markdown = render_table(table(("A", "B", "C"), ("1", "2", "3")).rows)
        assert markdown == (
            "| A | B | C |\n"
            "| --- | --- | --- |\n"
            "| 1 | 2 | 3 |\n\n"
        )
        assert markdown.count("---") == 3

    def test_mismatched_columns_render_as_is(self):
        markdown = render_table(table(("A", "B", "C"), ("1", "2")).rows)
        assert markdown.splitlines()[2] == "| 1 | 2 |"

    def test_cell_fragments_joined(self):
        rows = (Row((Cell(("Python", "3.12")), Cell(("line\nbreak",)))),)
        assert render_table(rows).splitlines()[0] == "| Python 3.12 | line break |"


class TestTranscoder:
    def test_list_items_are_bullets_and_list_is_closed(self):
        blocks = [
            Paragraph(runs=(Run("First"),), is_list_item=True),
            Paragraph(runs=(Run("Second", bold=True),), is_list_item=True),
            paragraph("After"),
        ]
        assert blocks_to_markdown(blocks) == "* First\n* **Second**\n\nAfter\n\n"

    def test_blank_paragraphs_are_skipped(self):
        assert blocks_to_markdown([paragraph("   "), paragraph("Text")]) == "Text\n\n"

    def test_full_document(self, resume_docx_bytes):
        markdown = docx_to_markdown(io.BytesIO(resume_docx_bytes))

        assert markdown == (
            "# Jane Doe\n\n"
            "## Experience\n\n"
            "#### Senior Engineer\n"
            "*Jan 2020*\n\n"
            "Built **data pipelines** in Python.\n\n"
            "* Led the migration to Kubernetes\n"
            "* Mentored four engineers\n"
            "\n"
            "## Skills\n\n"
            "| Language | Cloud | Data |\n"
            "| --- | --- | --- |\n"
            "| Python | AWS | SQL |\n\n"
        )

    def test_file_path_input(self, resume_docx_file):
        assert docx_to_markdown(resume_docx_file).startswith("# Jane Doe\n\n")
