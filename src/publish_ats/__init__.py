from publish_ats.ats_optimizer import (
    extract_entities,
    highlight_entities,
    optimize_for_ats,
)
from publish_ats.converter import publish
from publish_ats.document_model import MissingBodyError, read_docx
from publish_ats.docx_to_markdown import blocks_to_markdown, docx_to_markdown
from publish_ats.html_to_docx import html_to_blocks, html_to_docx, write_docx

__version__ = "1.0.0"

__all__ = [
    "MissingBodyError",
    "blocks_to_markdown",
    "docx_to_markdown",
    "extract_entities",
    "highlight_entities",
    "html_to_blocks",
    "html_to_docx",
    "optimize_for_ats",
    "publish",
    "read_docx",
    "write_docx",
]
