import argparse
import logging
import sys
from typing import Sequence

from publish_ats.config import DEFAULT_CONFIG_FILE, ConfigLoader, configure_logging
from publish_ats.converter import (
    SUPPORTED_FORMATS,
    InputValidationError,
    parse_formats,
    publish,
    validate_input,
)

logger = logging.getLogger(__name__)

PROGRAM_DESCRIPTION = """
Publish a CV into ATS-friendly formats.

Converts a Markdown or Word resume into Markdown, Word, HTML and PDF. With
--ats, technologies, skills, roles and education are detected, highlighted
in bold and summarized at the top of the document.
"""

EPILOG_TEXT = f"""
Supported formats: {", ".join(SUPPORTED_FORMATS)}

Examples:
  publish-ats resume.md -f pdf,docx -a
      - Converts resume.md to resume.pdf and resume.docx with ATS highlights

  publish-ats -i resume.docx -o output_resume -f pdf,md
      - Converts resume.docx to output_resume.pdf and output_resume.md
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="publish-ats",
        description=PROGRAM_DESCRIPTION,
        epilog=EPILOG_TEXT,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "input_path",
        nargs="?",
        help="Input markdown or Word file path",
    )
    parser.add_argument(
        "-i", "--input", dest="input_file", help="Input markdown or Word file path"
    )
    parser.add_argument(
        "-o",
        "--output",
        dest="output_file",
        help='Output file path (default: "<input_file>.<format>")',
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="formats",
        action="append",
        default=[],
        help="Output formats, comma-separated (pdf,docx,doc,md,html)",
    )
    parser.add_argument(
        "-a",
        "--ats",
        dest="optimize",
        action="store_true",
        help="Optimize for Applicant Tracking Systems",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config_file",
        help="Path to YAML configuration file",
        default=DEFAULT_CONFIG_FILE,
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        dest="debug",
        help="Enable debug logging",
        default=False,
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line interface

    Args:
        argv: Arguments, defaults to sys.argv[1:]

    Returns:
        int: Process exit status
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    config_loader = ConfigLoader(args.config_file)
    configure_logging("DEBUG" if args.debug else config_loader.log_level)

    input_file = args.input_file or args.input_path
    formats = parse_formats(",".join(args.formats))

    try:
        validate_input(input_file, formats)
    except InputValidationError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        parser.print_help()
        return 1

    try:
        written = publish(
            input_file,
            formats,
            output_file=args.output_file,
            optimize=args.optimize,
            config_loader=config_loader,
        )
    except Exception as e:
        logger.debug("Conversion failed", exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1

    for path in written:
        print(f"✅ Created: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
