import logging
import os
from pathlib import Path
from typing import Iterable

from publish_ats.ats_optimizer import optimize_for_ats
from publish_ats.config import ConfigLoader
from publish_ats.docx_to_markdown import docx_to_markdown
from publish_ats.html_to_docx import html_to_docx
from publish_ats.renderers import html_document, markdown_to_html, render_pdf

logger = logging.getLogger(__name__)

##############################
# Define some defaults at module level
##############################
MD_EXTENSION = "md"
DOCX_EXTENSION = "docx"
DOC_EXTENSION = "doc"
PDF_EXTENSION = "pdf"
HTML_EXTENSION = "html"
SUPPORTED_FORMATS = (
    PDF_EXTENSION,
    DOCX_EXTENSION,
    DOC_EXTENSION,
    MD_EXTENSION,
    HTML_EXTENSION,
)
WORD_EXTENSIONS = (f".{DOCX_EXTENSION}", f".{DOC_EXTENSION}")
EXTRACTED_SUFFIX = "_extracted"
ATS_OPTIMIZED_SUFFIX = "_ats_optimized"


class InputValidationError(ValueError):
    """Raised when the input file or requested formats are unusable"""


class OutputFilePath:
    """Class to handle output file path generation

    Properties:
        input_file (Path): The input file path
        output_file (Path): Custom output path, with or without extension
    """

    def __init__(self, input_file: Path, output_file: Path | str | None = None):
        self.input_file = Path(input_file)
        self.output_file = Path(output_file) if output_file else None

    def output_path(self, extension: str) -> Path:
        """Get the output file path for a format

        A custom path without an extension gets '.<extension>' appended.
        Otherwise the input path is reused with the new extension.

        Args:
            extension (str): The file extension for the output file

        Returns:
            Path: The output path
        """
        if self.output_file and self.output_file.suffix:
            output_path = self.output_file
        elif self.output_file:
            output_path = self.output_file.with_name(
                f"{self.output_file.name}.{extension}"
            )
        else:
            output_path = self.input_file.with_suffix(f".{extension}")

        if output_path.exists():
            logger.warning(f"Overwriting existing file {output_path}")
        return output_path

    def sibling_path(self, suffix: str) -> Path:
        """Markdown path next to the input file, e.g. 'resume_extracted.md'"""
        return self.input_file.with_name(
            f"{self.input_file.stem}{suffix}.{MD_EXTENSION}"
        )


##############################
# Validation
##############################
def parse_formats(formats: str | Iterable[str]) -> list[str]:
    """Normalize requested output formats, dropping unsupported ones

    Args:
        formats: Comma-separated string or iterable of format names

    Returns:
        list: Lowercase supported formats in request order, without duplicates
    """
    if isinstance(formats, str):
        formats = formats.split(",")

    parsed = []
    for fmt in formats:
        fmt = fmt.strip().lower().lstrip(".")
        if not fmt:
            continue
        if fmt not in SUPPORTED_FORMATS:
            logger.warning(f"Unsupported format '{fmt}' skipped")
            continue
        if fmt not in parsed:
            parsed.append(fmt)
    return parsed


def validate_input(input_file: Path | str | None, formats: list[str]) -> Path:
    """Check the input path exists and at least one output format is set

    Raises:
        InputValidationError: If the input or formats are unusable
    """
    if not input_file:
        raise InputValidationError("Input file path is required.")

    input_path = Path(input_file)
    if not input_path.is_file():
        raise InputValidationError(f"File not found at path '{input_path}'.")

    if not formats:
        raise InputValidationError("At least one output format must be specified.")

    return input_path


##############################
# Import / Export
##############################
def save_markdown_file(path: Path | str, content: str) -> Path:
    path = Path(path)
    path.write_text(content, encoding="utf-8")
    logger.info(f"Saved: {path}")
    return path


def import_input(input_file: Path | str) -> str:
    """Read the input file as markdown

    Word documents are converted and the extracted markdown is saved next
    to the input as '<name>_extracted.md'.

    Args:
        input_file (Path): Markdown or Word file

    Returns:
        str: Markdown text
    """
    input_file = Path(input_file)
    extension = input_file.suffix.lower()

    if extension in WORD_EXTENSIONS:
        logger.info(f"Converting Word document to Markdown: {input_file}")
        markdown_text = docx_to_markdown(input_file)
        save_markdown_file(
            OutputFilePath(input_file).sibling_path(EXTRACTED_SUFFIX), markdown_text
        )
        return markdown_text

    if extension != f".{MD_EXTENSION}":
        logger.warning(
            f"The file {input_file} is neither Markdown nor Word format, "
            "reading it as text"
        )
    return input_file.read_text(encoding="utf-8")


def export_files(
    input_file: Path | str,
    formats: Iterable[str],
    markdown_text: str,
    output_file: Path | str | None = None,
    config_loader: ConfigLoader | None = None,
) -> list[Path]:
    """Write the markdown in every requested format

    Args:
        input_file (Path): The input file, used to derive output paths
        formats: Output formats (see SUPPORTED_FORMATS)
        markdown_text (str): Markdown content to export
        output_file (Path, optional): Custom output path
        config_loader (ConfigLoader, optional): Configuration

    Returns:
        list: Paths of the written files, in format order
    """
    config_loader = config_loader or ConfigLoader()
    output_paths = OutputFilePath(input_file, output_file)
    html = markdown_to_html(markdown_text, config_loader.markdown_extensions)

    written = []
    for fmt in formats:
        output_path = output_paths.output_path(fmt)

        if fmt == MD_EXTENSION:
            written.append(save_markdown_file(output_path, markdown_text))
        elif fmt in (DOCX_EXTENSION, DOC_EXTENSION):
            written.append(
                html_to_docx(
                    html,
                    output_path,
                    bullet_character=config_loader.html_to_docx["bullet_character"],
                    fallback_text=config_loader.html_to_docx["fallback_text"],
                )
            )
            logger.info(f"Converted to Word: {output_path}")
        elif fmt == PDF_EXTENSION:
            written.append(
                render_pdf(
                    html,
                    output_path,
                    page_format=config_loader.pdf.get("page_format", "Letter"),
                    print_background=config_loader.pdf.get("print_background", True),
                    timeout_ms=config_loader.pdf.get("timeout_ms", 30000),
                )
            )
        elif fmt == HTML_EXTENSION:
            output_path.write_text(html_document(html), encoding="utf-8")
            logger.info(f"Saved: {output_path}")
            written.append(output_path)
        else:
            logger.warning(f"Unsupported format '{fmt}' skipped")

    return written


def optimize_markdown(markdown_text: str, config_loader: ConfigLoader) -> str:
    """Run ATS optimization with configured thresholds"""
    ats = config_loader.ats
    return optimize_for_ats(
        markdown_text,
        window=ats.get("highlight_window"),
        min_technology_length=ats.get("min_technology_length"),
        min_skill_length=ats.get("min_skill_length"),
    )


def publish(
    input_file: Path | str,
    formats: str | Iterable[str],
    output_file: Path | str | None = None,
    optimize: bool = False,
    config_loader: ConfigLoader | None = None,
) -> list[Path]:
    """Import a resume, optionally optimize it for ATS and export it

    Args:
        input_file (Path): Markdown or Word file
        formats: Output formats, comma-separated or iterable
        output_file (Path, optional): Custom output path
        optimize (bool): Whether to highlight ATS keywords
        config_loader (ConfigLoader, optional): Configuration

    Returns:
        list: Paths of the written files

    Raises:
        InputValidationError: If the input or formats are unusable
        MissingBodyError: If a Word input has no body element
    """
    config_loader = config_loader or ConfigLoader()
    formats = parse_formats(formats)
    input_path = validate_input(input_file, formats)

    markdown_text = import_input(input_path)

    if optimize:
        markdown_text = optimize_markdown(markdown_text, config_loader)
        save_markdown_file(
            OutputFilePath(input_path).sibling_path(ATS_OPTIMIZED_SUFFIX),
            markdown_text,
        )

    written = export_files(
        input_path,
        formats,
        markdown_text,
        output_file=output_file,
        config_loader=config_loader,
    )
    logger.debug(f"Files written: {[os.fspath(p) for p in written]}")
    return written


__all__ = [
    "ATS_OPTIMIZED_SUFFIX",
    "DOCX_EXTENSION",
    "DOC_EXTENSION",
    "EXTRACTED_SUFFIX",
    "HTML_EXTENSION",
    "InputValidationError",
    "MD_EXTENSION",
    "OutputFilePath",
    "PDF_EXTENSION",
    "SUPPORTED_FORMATS",
    "export_files",
    "import_input",
    "optimize_markdown",
    "parse_formats",
    "publish",
    "save_markdown_file",
    "validate_input",
]
