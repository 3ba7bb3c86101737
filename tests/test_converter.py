import logging
from pathlib import Path

import pytest
from docx import Document as DOCX_Document

from publish_ats.config import ConfigLoader
from publish_ats.converter import (
    InputValidationError,
    OutputFilePath,
    import_input,
    parse_formats,
    publish,
    validate_input,
)


@pytest.fixture
def config_loader():
    return ConfigLoader(None)


@pytest.fixture
def fake_pdf(monkeypatch):
    """Replace the headless browser with a stub that records its input"""
    calls = []

    def render_pdf(html, output_file, **kwargs):
        calls.append({"html": html, "output_file": Path(output_file), **kwargs})
        Path(output_file).write_bytes(b"%PDF-fake")
        return Path(output_file)

    monkeypatch.setattr("publish_ats.converter.render_pdf", render_pdf)
    return calls


##############################
# Paths and validation
##############################
@pytest.mark.parametrize(
    "formats, expected",
    [
        ("pdf,docx", ["pdf", "docx"]),
        ("PDF, .docx ,,pdf", ["pdf", "docx"]),
        (["md", "rtf", "html"], ["md", "html"]),
        ("", []),
    ],
)
def test_parse_formats(formats, expected):
    assert parse_formats(formats) == expected


def test_output_path_from_input(tmp_path):
    paths = OutputFilePath(tmp_path / "resume.md")

    assert paths.output_path("pdf") == tmp_path / "resume.pdf"
    assert paths.sibling_path("_extracted") == tmp_path / "resume_extracted.md"


def test_custom_output_path(tmp_path):
    assert OutputFilePath(tmp_path / "resume.md", tmp_path / "cv").output_path(
        "docx"
    ) == tmp_path / "cv.docx"
    assert OutputFilePath(tmp_path / "resume.md", tmp_path / "cv.pdf").output_path(
        "pdf"
    ) == tmp_path / "cv.pdf"


def test_overwrite_warning(tmp_path, caplog):
    (tmp_path / "resume.docx").write_bytes(b"old")

    with caplog.at_level(logging.WARNING):
        OutputFilePath(tmp_path / "resume.md").output_path("docx")

    assert "Overwriting existing file" in caplog.text


def test_validate_input(resume_markdown_file, tmp_path):
    assert validate_input(str(resume_markdown_file), ["md"]) == resume_markdown_file

    with pytest.raises(InputValidationError, match="required"):
        validate_input(None, ["md"])
    with pytest.raises(InputValidationError, match="File not found"):
        validate_input(tmp_path / "missing.md", ["md"])
    with pytest.raises(InputValidationError, match="format"):
        validate_input(resume_markdown_file, [])


def test_import_plain_text_with_warning(tmp_path, caplog):
    text_file = tmp_path / "resume.txt"
    text_file.write_text("Python developer", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        assert import_input(text_file) == "Python developer"

    assert "neither Markdown nor Word" in caplog.text


##############################
# Publish
##############################
def test_publish_markdown_to_word_and_html(resume_markdown_file, config_loader):
    written = publish(resume_markdown_file, "docx,html", config_loader=config_loader)

    docx_file = resume_markdown_file.with_suffix(".docx")
    html_file = resume_markdown_file.with_suffix(".html")
    assert written == [docx_file, html_file]

    document = DOCX_Document(docx_file)
    assert [p.text for p in document.paragraphs] == [
        "Jane Doe",
        "Experience",
        "Senior Software Engineer building Python and Docker services.",
        "• Designed Cloud Architecture on AWS",
        "• Ran a Database Migration",
    ]
    assert document.paragraphs[0].style.name == "Heading 1"

    html = html_file.read_text(encoding="utf-8")
    assert html.startswith("<!DOCTYPE html>")
    assert "<h1>Jane Doe</h1>" in html


def test_publish_word_saves_extracted_markdown(resume_docx_file, tmp_path, config_loader):
    written = publish(
        resume_docx_file, ["md"], output_file=tmp_path / "cv", config_loader=config_loader
    )

    assert written == [tmp_path / "cv.md"]
    extracted = tmp_path / "resume_extracted.md"
    assert extracted.read_text(encoding="utf-8") == written[0].read_text(encoding="utf-8")
    assert extracted.read_text(encoding="utf-8").startswith("# Jane Doe\n\n## Experience")


def test_publish_with_ats_optimization(resume_markdown_file, config_loader):
    written = publish(
        resume_markdown_file, "html", optimize=True, config_loader=config_loader
    )

    optimized = resume_markdown_file.with_name("resume_ats_optimized.md")
    assert optimized.read_text(encoding="utf-8").startswith(
        "**Technologies:** Aws, Docker, Python\n"
    )
    assert "<strong>Docker</strong>" in written[0].read_text(encoding="utf-8")


def test_publish_docx_keeps_ats_highlights(resume_markdown_file, config_loader):
    (docx_file,) = publish(
        resume_markdown_file, "docx", optimize=True, config_loader=config_loader
    )

    paragraphs = DOCX_Document(docx_file).paragraphs
    assert "ats-summary" not in "".join(p.text for p in paragraphs)

    body = next(p for p in paragraphs if p.text.startswith("Senior Software Engineer"))
    assert [run.text for run in body.runs if run.bold] == ["Python", "Docker"]


def test_publish_uses_configured_thresholds(resume_markdown_file, config_loader):
    config_loader.update({"ats": {"min_technology_length": 10, "min_skill_length": 30}})

    publish(resume_markdown_file, "html", optimize=True, config_loader=config_loader)

    optimized = resume_markdown_file.with_name("resume_ats_optimized.md")
    body = optimized.read_text(encoding="utf-8").split("\n\n", 1)[1]
    assert "**" not in body


def test_publish_pdf(resume_markdown_file, config_loader, fake_pdf):
    config_loader.update({"pdf": {"page_format": "A4"}})

    written = publish(resume_markdown_file, "pdf", config_loader=config_loader)

    assert written == [resume_markdown_file.with_suffix(".pdf")]
    assert written[0].read_bytes() == b"%PDF-fake"
    assert "<h1>Jane Doe</h1>" in fake_pdf[0]["html"]
    assert fake_pdf[0]["page_format"] == "A4"


def test_publish_rejects_unusable_input(tmp_path, config_loader):
    with pytest.raises(InputValidationError):
        publish(tmp_path / "missing.md", "pdf", config_loader=config_loader)

    markdown_file = tmp_path / "resume.md"
    markdown_file.write_text("# Jane", encoding="utf-8")
    with pytest.raises(InputValidationError):
        publish(markdown_file, "rtf", config_loader=config_loader)
