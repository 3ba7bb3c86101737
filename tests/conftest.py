import io

import pytest
from docx import Document as DOCX_Document


def mark_as_list_item(paragraph, num_id: int = 1) -> None:
    """Attach numbering properties to a python-docx paragraph"""
    num_pr = paragraph._p.get_or_add_pPr().get_or_add_numPr()
    num_pr.get_or_add_ilvl().val = 0
    num_pr.get_or_add_numId().val = num_id


def build_resume_document():
    document = DOCX_Document()
    document.add_heading("Jane Doe", level=0)
    document.add_heading("Experience", level=2)

    job = document.add_paragraph()
    job.add_run("Senior Engineer – ")
    job.add_run("Jan 2020").italic = True

    summary = document.add_paragraph()
    summary.add_run("Built ")
    summary.add_run("data pipelines").bold = True
    summary.add_run(" in Python.")

    for text in ("Led the migration to Kubernetes", "Mentored four engineers"):
        mark_as_list_item(document.add_paragraph(text))

    document.add_heading("Skills", level=2)
    table = document.add_table(rows=2, cols=3)
    for cell, text in zip(table.rows[0].cells, ("Language", "Cloud", "Data")):
        cell.text = text
    for cell, text in zip(table.rows[1].cells, ("Python", "AWS", "SQL")):
        cell.text = text

    return document


@pytest.fixture
def resume_document():
    return build_resume_document()


@pytest.fixture
def resume_docx_bytes(resume_document) -> bytes:
    stream = io.BytesIO()
    resume_document.save(stream)
    return stream.getvalue()


@pytest.fixture
def resume_docx_file(tmp_path, resume_document):
    path = tmp_path / "resume.docx"
    resume_document.save(path)
    return path


@pytest.fixture
def resume_markdown_file(tmp_path):
    path = tmp_path / "resume.md"
    path.write_text(
        "# Jane Doe\n\n"
        "## Experience\n\n"
        "Senior Software Engineer building Python and Docker services.\n\n"
        "* Designed Cloud Architecture on AWS\n"
        "* Ran a Database Migration\n",
        encoding="utf-8",
    )
    return path
