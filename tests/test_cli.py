import pytest

from publish_ats import cli


def test_help_lists_formats(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])

    assert excinfo.value.code == 0
    assert "pdf, docx, doc, md, html" in capsys.readouterr().out


def test_missing_input_prints_error_and_help(capsys):
    assert cli.main(["-f", "pdf"]) == 1

    captured = capsys.readouterr()
    assert "❌ Error: Input file path is required." in captured.err
    assert "usage: publish-ats" in captured.out


def test_missing_format(resume_markdown_file, capsys):
    assert cli.main([str(resume_markdown_file)]) == 1
    assert "At least one output format" in capsys.readouterr().err


def test_convert_markdown(resume_markdown_file, capsys):
    exit_code = cli.main([str(resume_markdown_file), "-f", "docx", "-f", "html"])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert f"✅ Created: {resume_markdown_file.with_suffix('.docx')}" in out
    assert f"✅ Created: {resume_markdown_file.with_suffix('.html')}" in out


def test_convert_word_with_ats_and_output(resume_docx_file, tmp_path):
    exit_code = cli.main(
        ["-i", str(resume_docx_file), "-o", str(tmp_path / "cv"), "-f", "md", "--ats"]
    )

    assert exit_code == 0
    assert (tmp_path / "resume_extracted.md").exists()
    assert (tmp_path / "resume_ats_optimized.md").exists()
    assert (tmp_path / "cv.md").read_text(encoding="utf-8").startswith(
        "**Technologies:**"
    )


def test_failure_is_fatal(resume_markdown_file, monkeypatch, capsys):
    def publish(*args, **kwargs):
        raise RuntimeError("browser crashed")

    monkeypatch.setattr(cli, "publish", publish)

    assert cli.main([str(resume_markdown_file), "-f", "pdf"]) == 1
    assert "Fatal error: browser crashed" in capsys.readouterr().err
