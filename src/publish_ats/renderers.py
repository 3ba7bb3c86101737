import logging
from pathlib import Path
from typing import Sequence

import markdown

logger = logging.getLogger(__name__)

DEFAULT_MARKDOWN_EXTENSIONS = ("tables",)
HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
</head>
<body>
{body}
</body>
</html>
"""


def markdown_to_html(
    markdown_text: str, extensions: Sequence[str] = DEFAULT_MARKDOWN_EXTENSIONS
) -> str:
    """Render markdown to an HTML fragment

    Args:
        markdown_text (str): Markdown text
        extensions: python-markdown extension names

    Returns:
        str: HTML fragment
    """
    return markdown.markdown(markdown_text, extensions=list(extensions))


def html_document(html: str) -> str:
    """Wrap an HTML fragment in a complete document if it is not one already"""
    if "<html" in html.lower():
        return html
    return HTML_TEMPLATE.format(body=html)


def render_pdf(
    html: str,
    output_file: Path | str,
    page_format: str = "Letter",
    print_background: bool = True,
    timeout_ms: int = 30000,
) -> Path:
    """Render HTML to PDF with headless Chromium

    Args:
        html (str): HTML fragment or document
        output_file (Path): Where to write the PDF
        page_format (str): Paper format understood by Chromium ('Letter', 'A4')
        print_background (bool): Whether to print background graphics
        timeout_ms (int): Page timeout in milliseconds

    Returns:
        Path: The written PDF file

    Raises:
        RuntimeError: If Playwright is not installed
    """
    try:
        from playwright.sync_api import sync_playwright
    except ImportError as e:
        raise RuntimeError(
            "PDF output requires Playwright: pip install 'publish-ats[pdf]' "
            "&& playwright install chromium"
        ) from e

    output_file = Path(output_file)

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=True)
        try:
            page = browser.new_page()
            page.set_default_timeout(timeout_ms)
            page.set_content(html_document(html), wait_until="networkidle")
            page.pdf(
                path=str(output_file),
                format=page_format,
                print_background=print_background,
            )
        finally:
            browser.close()

    logger.info(f"Rendered PDF: {output_file}")
    return output_file


__all__ = ["html_document", "markdown_to_html", "render_pdf"]
