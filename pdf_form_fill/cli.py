"""Command line entry points: list a form's fields, or fill it once."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .errors import NoValidSource, SerializationError, UnsupportedImageFormat
from .logging_utils import configure_logging
from .schema import ImageAsset
from .session import FormSession
from .sources import FileOrigin

logger = logging.getLogger(__name__)

EXIT_NO_SOURCE = 2
EXIT_BAD_IMAGE = 3
EXIT_SERIALIZATION = 4
EXIT_BAD_VALUES = 5


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pdf-form-fill", description="Inspect and fill PDF AcroForms")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_fields = sub.add_parser("fields", help="print the form's fields in reading order as JSON")
    p_fields.add_argument("pdf", nargs="+", help="candidate PDFs; the first valid one is used")

    p_fill = sub.add_parser("fill", help="fill the form once and write the result")
    p_fill.add_argument("pdf", nargs="+", help="candidate PDFs; the first valid one is used")
    p_fill.add_argument("--values", required=True, help="path to a JSON file holding an object of field name -> value")
    p_fill.add_argument("--image", help="PNG or JPEG drawn near the top of the first page")
    p_fill.add_argument("-o", "--output", required=True, help="where to write the filled PDF")
    return parser


def _cmd_fields(session: FormSession) -> int:
    labels = session.field_labels()
    out = []
    for d in session.fields:
        entry = d.to_public()
        entry["label"] = labels.get(d.name, d.name)
        out.append(entry)
    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


def _cmd_fill(session: FormSession, args: argparse.Namespace) -> int:
    try:
        values = json.loads(Path(args.values).read_text(encoding="utf-8"))
        if not isinstance(values, dict):
            raise ValueError(f"expected a JSON object, got {type(values).__name__}")
    except (OSError, ValueError) as e:  # JSONDecodeError is a ValueError
        logger.error("Values rejected: %s", e)
        return EXIT_BAD_VALUES

    image = None
    if args.image:
        try:
            image = ImageAsset.from_bytes(Path(args.image).read_bytes())
        except (OSError, UnsupportedImageFormat) as e:
            logger.error("Image rejected: %s", e)
            return EXIT_BAD_IMAGE

    try:
        data = session.render(values, image)
    except SerializationError as e:
        logger.error("%s", e)
        return EXIT_SERIALIZATION
    Path(args.output).write_bytes(data)
    summary = session.last_summary.to_dict() if session.last_summary else {}
    print(json.dumps({"output": args.output, "bytes": len(data), **summary}, indent=2, ensure_ascii=False))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        session = FormSession.open([FileOrigin(p) for p in args.pdf], cycle_log=None)
    except NoValidSource as e:
        logger.error("%s", e)
        return EXIT_NO_SOURCE

    if args.command == "fields":
        return _cmd_fields(session)
    return _cmd_fill(session, args)


if __name__ == "__main__":
    sys.exit(main())
