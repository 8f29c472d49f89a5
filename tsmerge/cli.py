from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_LIBRARY, ComposeOptions
from .errors import ComposeError
from .pipeline import SourceText, compose_units


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="tsmerge",
        description="tsmerge: fold module classes into a base TypeScript class",
    )
    ap.add_argument("base", type=Path, help="Base source unit (.ts)")
    ap.add_argument("modules", type=Path, nargs="+", help="Module source units, merged in the given order")
    ap.add_argument("-n", "--name", required=True, help="Name of the composed class")
    ap.add_argument("-o", "--output", type=Path, help="Write the composed unit here instead of stdout")
    ap.add_argument(
        "--library",
        default=DEFAULT_LIBRARY,
        help=f"Import source whose named symbols are unioned (default: {DEFAULT_LIBRARY})",
    )
    ap.add_argument("--indent-width", type=int, default=4, help="Spaces per indentation level (default: 4)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log composition details to stderr")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.indent_width < 0:
        ap.error("--indent-width must not be negative")
    options = ComposeOptions(library=args.library, indent=" " * args.indent_width)

    try:
        base = SourceText.from_path(args.base)
        modules = [SourceText.from_path(path) for path in args.modules]
    except OSError as exc:
        print(f"[io] {exc}", file=sys.stderr)
        return 2

    try:
        composition = compose_units(base, modules, args.name, options)
    except ComposeError as exc:
        print(f"[{type(exc).__name__}] {exc}", file=sys.stderr)
        return 1

    if args.output is not None:
        args.output.write_text(composition.text, encoding="utf-8")
    else:
        sys.stdout.write(composition.text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
