import logging
import re
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import IO, Callable, Sequence

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString
from bs4.element import PageElement as BS4_Element
from bs4.element import Tag as BS4_Tag
from docx import Document as DOCX_Document

from publish_ats.document_model import (
    TITLE_STYLE_ID,
    Paragraph,
    Run,
    heading_level,
    merge_runs,
)

logger = logging.getLogger(__name__)

DEFAULT_BULLET_CHARACTER = "•"
DEFAULT_FALLBACK_TEXT = "The content could not be converted."
INVISIBLE_TAGS = ["head", "script", "style", "template"]
BOLD_TAGS = ("strong", "b")
ITALIC_TAGS = ("em", "i")


class HtmlNodeKind(Enum):
    """Maps HTML tag names to the block they produce

    Properties:
        tag_names (tuple[str]): Tag names handled by this kind
    """

    HEADING = ("h1", "h2", "h3", "h4", "h5", "h6")
    PARAGRAPH = ("p",)
    LIST = ("ul", "ol")
    CONTAINER = (
        "html",
        "body",
        "div",
        "section",
        "article",
        "main",
        "header",
        "footer",
        "nav",
        "aside",
        "blockquote",
    )
    OTHER = ()

    def __init__(self, *tag_names: str):
        self.tag_names = tag_names

    @classmethod
    def for_tag(cls, tag_name: str) -> "HtmlNodeKind":
        """Find the kind handling a tag name (case insensitive)"""
        tag_name = tag_name.lower()
        for kind in cls:
            if tag_name in kind.tag_names:
                return kind
        return cls.OTHER


class _HtmlWalker:
    """Walks an HTML tree and collects paragraph blocks in order"""

    def __init__(self, bullet_character: str = DEFAULT_BULLET_CHARACTER):
        self.bullet_character = bullet_character
        self.blocks: list[Paragraph] = []
        self._handlers: dict[HtmlNodeKind, Callable[[BS4_Tag], None]] = {
            HtmlNodeKind.HEADING: self._heading,
            HtmlNodeKind.PARAGRAPH: self._paragraph,
            HtmlNodeKind.LIST: self._list,
            HtmlNodeKind.CONTAINER: self._container,
            HtmlNodeKind.OTHER: self._fallback,
        }

    def walk(self, nodes: Sequence[BS4_Element]) -> None:
        for node in nodes:
            if isinstance(node, BS4_Tag):
                self._handlers[HtmlNodeKind.for_tag(node.name)](node)
            elif isinstance(node, NavigableString) and not isinstance(
                node, PreformattedString
            ):
                self._add((Run(str(node)),))

    def _add(
        self, runs: Sequence[Run], style_id: str | None = None, is_list_item=False
    ):
        runs = _collapse_whitespace(runs)
        if runs:
            self.blocks.append(
                Paragraph(
                    runs=runs,
                    style_id=style_id,
                    is_list_item=is_list_item,
                )
            )

    def _heading(self, tag: BS4_Tag) -> None:
        self._add(_styled_runs(tag), style_id=f"Heading{tag.name[1]}")

    def _paragraph(self, tag: BS4_Tag) -> None:
        self._add(_styled_runs(tag))

    def _list(self, tag: BS4_Tag) -> None:
        ordered = tag.name.lower() == "ol"

        # Numbering restarts for every list
        for number, item in enumerate(tag.find_all("li", recursive=False), start=1):
            marker = f"{number}." if ordered else self.bullet_character
            runs = _collapse_whitespace(_styled_runs(item))
            if runs:
                self._add((Run(f"{marker} "),) + runs, is_list_item=True)

    def _container(self, tag: BS4_Tag) -> None:
        children = [child for child in tag.children if isinstance(child, BS4_Tag)]
        if children:
            self.walk(list(tag.children))
        else:
            self._add(_styled_runs(tag))

    def _fallback(self, tag: BS4_Tag) -> None:
        self._add(_styled_runs(tag))


def _styled_runs(tag: BS4_Tag) -> list[Run]:
    """Text of a tag as runs, bold under <strong>/<b>, italic under <em>/<i>"""
    runs = []
    for string in tag.find_all(string=True):
        if isinstance(string, PreformattedString):
            continue

        names = set()
        for parent in string.parents:
            names.add((parent.name or "").lower())
            if parent is tag:
                break

        runs.append(
            Run(
                str(string),
                bold=bool(names.intersection(BOLD_TAGS)),
                italic=bool(names.intersection(ITALIC_TAGS)),
            )
        )
    return runs


def _collapse_whitespace(runs: Sequence[Run]) -> tuple[Run, ...]:
    """Collapse whitespace across run boundaries and trim the paragraph edges"""
    collapsed: list[Run] = []
    for run in runs:
        text = re.sub(r"\s+", " ", run.text)
        if collapsed and collapsed[-1].text.endswith(" "):
            text = text.lstrip(" ")
        if text:
            collapsed.append(replace(run, text=text))

    while collapsed and not collapsed[0].text.strip():
        collapsed.pop(0)
    while collapsed and not collapsed[-1].text.strip():
        collapsed.pop()
    if not collapsed:
        return ()

    collapsed[0] = replace(collapsed[0], text=collapsed[0].text.lstrip(" "))
    collapsed[-1] = replace(collapsed[-1], text=collapsed[-1].text.rstrip(" "))
    return merge_runs(collapsed)


def html_to_blocks(
    html: str, bullet_character: str = DEFAULT_BULLET_CHARACTER
) -> list[Paragraph]:
    """Convert HTML into paragraph blocks ready for a Word document

    Args:
        html (str): HTML text
        bullet_character (str): Marker used for unordered list items

    Returns:
        list: Paragraph blocks in document order. Empty when the document
        has no visible text.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(INVISIBLE_TAGS):
        tag.decompose()

    root = soup.body or soup

    walker = _HtmlWalker(bullet_character)
    walker.walk(list(root.children))

    if not walker.blocks:
        text = " ".join(soup.get_text().split())
        if text:
            logger.debug("No block elements found, using the whole document text")
            walker.blocks.append(Paragraph(runs=(Run(text),)))

    logger.debug(f"Extracted {len(walker.blocks)} blocks from HTML")
    return walker.blocks


def write_docx(
    blocks: Sequence[Paragraph],
    output_file: Path | str | IO[bytes],
    fallback_text: str = DEFAULT_FALLBACK_TEXT,
) -> Path | IO[bytes]:
    """Write paragraph blocks into a new Word document

    Args:
        blocks: Paragraph blocks from html_to_blocks
        output_file: Path or binary stream to save the document to
        fallback_text (str): Paragraph written when there are no blocks

    Returns:
        The path (or stream) the document was saved to
    """
    document = DOCX_Document()

    for block in blocks:
        text = block.text
        if block.style_id == TITLE_STYLE_ID:
            document.add_heading(text, level=0)
            continue

        level = heading_level(block.style_id)
        if level is not None:
            document.add_heading(text, level=level)
            continue

        para = document.add_paragraph()
        for run in block.runs:
            docx_run = para.add_run(run.text)
            if run.bold:
                docx_run.bold = True
            if run.italic:
                docx_run.italic = True

    if not blocks:
        logger.warning("No paragraphs were produced, writing fallback paragraph")
        document.add_paragraph(fallback_text)

    document.save(output_file)

    if isinstance(output_file, (str, Path)):
        return Path(output_file)
    return output_file


def html_to_docx(
    html: str,
    output_file: Path | str | IO[bytes],
    bullet_character: str = DEFAULT_BULLET_CHARACTER,
    fallback_text: str = DEFAULT_FALLBACK_TEXT,
) -> Path | IO[bytes]:
    """Convert HTML into a Word document"""
    blocks = html_to_blocks(html, bullet_character=bullet_character)
    return write_docx(blocks, output_file, fallback_text=fallback_text)


__all__ = [
    "DEFAULT_BULLET_CHARACTER",
    "DEFAULT_FALLBACK_TEXT",
    "HtmlNodeKind",
    "html_to_blocks",
    "html_to_docx",
    "write_docx",
]
