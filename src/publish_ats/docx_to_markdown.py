import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterable, Sequence

from publish_ats.document_model import (
    TITLE_STYLE_ID,
    Block,
    BlockKind,
    Paragraph,
    Row,
    Run,
    Table,
    heading_level,
    merge_runs,
    read_docx,
)

logger = logging.getLogger(__name__)

JOB_ENTRY_HEADING = "#### "
JOB_ENTRY_DASH_PATTERN = re.compile(r"\s[–—]\s")
JOB_ENTRY_DATE_PATTERN = re.compile(
    r"\b(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?"
    r"|Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
    r"\.?\s+\d{4}\b",
    re.IGNORECASE,
)
DASH_CHARACTERS = "-–— "
LIST_ITEM_PREFIX = "* "


@dataclass
class TranscodeState:
    """Accumulator for a single document-to-markdown pass

    Properties:
        title_seen (bool): Whether a Title-styled paragraph was already emitted
        in_list (bool): Whether the previous block was a list item
        parts (list[str]): Markdown fragments in document order
    """

    title_seen: bool = False
    in_list: bool = False
    parts: list[str] = field(default_factory=list)

    def append(self, text: str) -> None:
        self.parts.append(text)

    @property
    def markdown(self) -> str:
        return "".join(self.parts)


##############################
# Style Classifier
##############################
def classify_style(style_id: str | None, state: TranscodeState) -> str:
    """Map a paragraph style identifier to a markdown prefix

    Only the first Title-styled paragraph of a pass becomes the document
    title; later ones are plain paragraphs.

    Args:
        style_id (str): Paragraph style identifier, or None
        state (TranscodeState): State of the current pass

    Returns:
        str: '# ' for the first title, '#' * level + ' ' for headings,
        otherwise an empty string
    """
    if style_id == TITLE_STYLE_ID:
        if state.title_seen:
            return ""
        state.title_seen = True
        return "# "

    level = heading_level(style_id)
    if level is None:
        return ""
    return "#" * level + " "


##############################
# Inline Styling
##############################
def format_run(run: Run) -> str:
    """Wrap a run's text in emphasis markers

    Leading and trailing whitespace stays outside the markers so the result
    is valid markdown emphasis.
    """
    text = run.text
    if not text:
        return ""

    core = text.strip()
    if not core or not (run.bold or run.italic):
        return text

    leading = text[: len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()) :]

    if run.italic:
        core = f"*{core}*"
    if run.bold:
        core = f"**{core}**"

    return f"{leading}{core}{trailing}"


def format_runs(runs: Iterable[Run]) -> str:
    """Markdown for a run sequence, neighbours with equal styles joined first"""
    return "".join(format_run(run) for run in merge_runs(runs))


##############################
# Job-Entry Splitter
##############################
def is_job_entry(text: str) -> bool:
    """Check for a 'title – Month YYYY' line

    Requires a spaced en/em dash and a month name followed by a 4-digit year.
    """
    return bool(
        JOB_ENTRY_DASH_PATTERN.search(text) and JOB_ENTRY_DATE_PATTERN.search(text)
    )


def split_job_entry(runs: Sequence[Run]) -> tuple[str, str]:
    """Partition runs into a title and a date at the first italic run

    Args:
        runs: Runs of the paragraph, in order

    Returns:
        tuple: (title, date), both trimmed of whitespace and dash separators.
        The date is empty when no run is italic.
    """
    title_runs = []
    date_runs = []

    for run in runs:
        if date_runs or run.italic:
            date_runs.append(run)
        else:
            title_runs.append(run)

    title = "".join(run.text for run in title_runs).strip(DASH_CHARACTERS)
    date = "".join(run.text for run in date_runs).strip(DASH_CHARACTERS)
    return title.strip(), date.strip()


def render_job_entry(runs: Sequence[Run]) -> str:
    """Render a job entry as a level-4 heading and an emphasized date line"""
    title, date = split_job_entry(runs)
    if not date:
        logger.debug(f"Job entry without an italic date run: {title}")

    date_line = f"*{date}*" if date else ""
    return f"{JOB_ENTRY_HEADING}{title}\n{date_line}\n\n"


##############################
# Table Renderer
##############################
def render_table(rows: Sequence[Row]) -> str:
    """Render table rows as pipe-delimited markdown

    A separator line follows the first row, sized to its column count.
    Later rows are rendered as-is even if their column count differs.

    Args:
        rows: Table rows in order

    Returns:
        str: Markdown table followed by a blank line
    """
    lines = []
    for index, row in enumerate(rows):
        cells = [cell.text for cell in row.cells]
        lines.append("| " + "".join(f"{text} | " for text in cells).rstrip())

        if index == 0:
            lines.append("| " + "".join("--- | " for _ in cells).rstrip())

    return "\n".join(lines) + "\n\n"


##############################
# Document-to-Markdown Transcoder
##############################
def _paragraph_to_markdown(paragraph: Paragraph, state: TranscodeState) -> None:
    text = paragraph.text
    if not text.strip():
        return

    if is_job_entry(text):
        state.append(render_job_entry(paragraph.runs))
        return

    prefix = classify_style(paragraph.style_id, state)
    state.append(f"{prefix}{format_runs(paragraph.runs).strip()}\n\n")


def _list_item_to_markdown(paragraph: Paragraph, state: TranscodeState) -> None:
    text = format_runs(paragraph.runs).strip()
    if text:
        state.append(f"{LIST_ITEM_PREFIX}{text}\n")


def _table_to_markdown(table: Table, state: TranscodeState) -> None:
    if table.rows:
        state.append(render_table(table.rows))


BLOCK_RENDERERS = {
    BlockKind.PARAGRAPH: _paragraph_to_markdown,
    BlockKind.LIST_ITEM: _list_item_to_markdown,
    BlockKind.TABLE: _table_to_markdown,
}


def blocks_to_markdown(blocks: Iterable[Block]) -> str:
    """Convert a block sequence to markdown text

    Args:
        blocks: Paragraph and Table blocks in document order

    Returns:
        str: Markdown text
    """
    state = TranscodeState()

    for block in blocks:
        is_list_item = block.kind is BlockKind.LIST_ITEM

        # Close a bullet list before any other block
        if state.in_list and not is_list_item:
            state.append("\n")
        state.in_list = is_list_item

        BLOCK_RENDERERS[block.kind](block, state)

    return state.markdown


def docx_to_markdown(source: Path | str | IO[bytes]) -> str:
    """Convert a Word document to markdown

    Args:
        source: Path to a .docx file or a binary file-like object

    Returns:
        str: Markdown text

    Raises:
        MissingBodyError: If the document has no body element
    """
    blocks = read_docx(source)
    markdown_text = blocks_to_markdown(blocks)
    logger.info(f"Converted {len(blocks)} blocks to markdown")
    return markdown_text


__all__ = [
    "TranscodeState",
    "blocks_to_markdown",
    "classify_style",
    "docx_to_markdown",
    "format_run",
    "format_runs",
    "is_job_entry",
    "render_job_entry",
    "render_table",
    "split_job_entry",
]
