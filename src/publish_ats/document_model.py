import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import IO, Iterable

from docx import Document as DOCX_Document
from docx.document import Document as DOCX_DocumentType
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph as DOCX_Paragraph
from docx.text.run import Run as DOCX_Run

logger = logging.getLogger(__name__)

TITLE_STYLE_ID = "Title"
HEADING_STYLE_PATTERN = re.compile(r"Heading\s*(\d+)")
MAX_HEADING_LEVEL = 6


class MissingBodyError(ValueError):
    """Raised when a document tree has no body element to read blocks from"""


##############################
# Block Nodes
##############################
class BlockKind(Enum):
    """Tag of a block node, used to dispatch rendering"""

    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"
    TABLE = "table"


@dataclass(frozen=True)
class Run:
    """A styled span of text inside a paragraph"""

    text: str
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class Paragraph:
    """A paragraph block

    Properties:
        runs (tuple[Run]): Ordered runs, never reordered
        style_id (str): Raw style identifier (e.g. 'Heading2', 'Title') or None
        is_list_item (bool): Whether the paragraph is a numbered/bulleted entry
    """

    runs: tuple[Run, ...] = ()
    style_id: str | None = None
    is_list_item: bool = False

    @property
    def kind(self) -> BlockKind:
        return BlockKind.LIST_ITEM if self.is_list_item else BlockKind.PARAGRAPH

    @property
    def text(self) -> str:
        """Concatenated text of all runs"""
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class Cell:
    fragments: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        """Cell text with fragments joined by spaces and newlines cleared"""
        return " ".join(self.fragments).replace("\r", " ").replace("\n", " ")


@dataclass(frozen=True)
class Row:
    cells: tuple[Cell, ...] = ()


@dataclass(frozen=True)
class Table:
    rows: tuple[Row, ...] = ()

    @property
    def kind(self) -> BlockKind:
        return BlockKind.TABLE


Block = Paragraph | Table


def merge_runs(runs: Iterable[Run]) -> tuple[Run, ...]:
    """Join neighbouring runs with the same bold/italic flags

    Word splits text into runs for reasons that are invisible to the reader
    (spell checking, revision ids). Empty runs are dropped.
    """
    merged: list[Run] = []
    for run in runs:
        if not run.text:
            continue
        if merged and (merged[-1].bold, merged[-1].italic) == (run.bold, run.italic):
            merged[-1] = replace(merged[-1], text=merged[-1].text + run.text)
        else:
            merged.append(run)
    return tuple(merged)


def heading_level(style_id: str | None) -> int | None:
    """Get the heading level encoded in a style identifier

    Args:
        style_id (str): Style identifier such as 'Heading3'

    Returns:
        int or None: The level (1-6), or None when the identifier is not a
        heading or its suffix is out of range
    """
    if not style_id:
        return None

    match = HEADING_STYLE_PATTERN.fullmatch(style_id)
    if not match:
        return None

    level = int(match.group(1))
    if 1 <= level <= MAX_HEADING_LEVEL:
        return level

    logger.debug(f"Ignoring out of range heading style: {style_id}")
    return None


##############################
# python-docx Adapter
##############################
def read_docx(source: Path | str | IO[bytes]) -> list[Block]:
    """Read a Word document into an ordered block sequence

    Args:
        source: Path to a .docx file or a binary file-like object

    Returns:
        list: Blocks of the document body in document order

    Raises:
        MissingBodyError: If the document has no body element
    """
    document = DOCX_Document(source)
    return blocks_from_document(document)


def blocks_from_document(document: DOCX_DocumentType) -> list[Block]:
    """Convert an opened python-docx document into block nodes

    Args:
        document: The Word document object

    Returns:
        list: Paragraph and Table blocks in document order

    Raises:
        MissingBodyError: If the document has no body element
    """
    body = document.element.body
    if body is None:
        raise MissingBodyError("The Word document does not have a body element.")

    blocks = []
    for child in body.iterchildren():
        if child.tag == qn("w:p"):
            blocks.append(_read_paragraph(DOCX_Paragraph(child, document)))
        elif child.tag == qn("w:tbl"):
            blocks.append(_read_table(child))
        else:
            logger.debug(f"Skipping body element: {child.tag}")

    logger.debug(f"Read {len(blocks)} blocks from document body")
    return blocks


def _read_paragraph(paragraph: DOCX_Paragraph) -> Paragraph:
    """Read runs, style identifier and list flag from a Word paragraph"""
    p = paragraph._p
    p_pr = p.pPr

    # Runs wrapped in hyperlinks, insertions, smart tags and content controls
    # carry visible text too. Runs of nested paragraphs belong to those.
    runs = []
    for r in p.iter(qn("w:r")):
        if next(r.iterancestors(qn("w:p")), None) is not p:
            continue
        run = DOCX_Run(r, paragraph)
        runs.append(Run(run.text, bold=bool(run.bold), italic=bool(run.italic)))

    style_id = p_pr.style if p_pr is not None else None

    return Paragraph(
        runs=tuple(runs),
        style_id=style_id,
        is_list_item=_has_numbering(paragraph),
    )


def _has_numbering(paragraph: DOCX_Paragraph) -> bool:
    """Check if a paragraph, or its style, carries numbering properties"""
    p_pr = paragraph._p.pPr
    if p_pr is not None and p_pr.numPr is not None:
        return True

    if p_pr is None or p_pr.style is None:
        return False

    style = paragraph.style
    style_pr = style.element.pPr if style is not None else None
    return style_pr is not None and style_pr.numPr is not None


def _read_table(tbl) -> Table:
    """Read rows and cell text fragments from a table element"""
    rows = []
    for tr in tbl.tr_lst:
        cells = []
        for tc in tr.tc_lst:
            fragments = tuple(t.text or "" for t in tc.iter(qn("w:t")))
            cells.append(Cell(fragments))
        rows.append(Row(tuple(cells)))
    return Table(tuple(rows))


__all__ = [
    "Block",
    "BlockKind",
    "Cell",
    "MissingBodyError",
    "Paragraph",
    "Row",
    "Run",
    "Table",
    "TITLE_STYLE_ID",
    "blocks_from_document",
    "heading_level",
    "merge_runs",
    "read_docx",
]
