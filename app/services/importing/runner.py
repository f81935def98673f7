"""Normalize a raw provider export into the canonical import payload.

Usage:
    python -m app.services.importing.runner --provider c3teachers --input raw.json [--output out.json] [--pretty] [--limit 5]

Prints JSON to stdout unless --output is given. Exit code 0 on success, 1 on
any error (message on stderr).
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

from .normalizers import load_provider_file
from .providers import IMPORT_PROVIDERS, parse_provider_id


class CliError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise CliError(message)


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"--limit must be a positive integer, got {value!r}") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"--limit must be a positive integer, got {value!r}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    ids = ", ".join(p.id.value for p in IMPORT_PROVIDERS)
    parser = _Parser(prog="import-providers", description="Normalize provider exports for the import queue")
    parser.add_argument("--provider", required=True, help=f"Provider id ({ids})")
    parser.add_argument("--input", required=True, help="Path to the raw provider JSON file")
    parser.add_argument("--output", help="Write the payload here instead of stdout")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    parser.add_argument("--limit", type=_positive_int, help="Process at most N top-level groups")
    return parser


def run(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    provider = parse_provider_id(args.provider)
    result = load_provider_file(provider, args.input, limit=args.limit)
    text = json.dumps(result.to_json_payload(), ensure_ascii=False, indent=2 if args.pretty else None)

    if args.output:
        out_dir = os.path.dirname(os.path.abspath(args.output))
        os.makedirs(out_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        print(f"Wrote {args.output}. {result.summary()}")
    else:
        sys.stdout.write(text + "\n")
    return 0


def main(argv: Optional[list] = None) -> int:
    try:
        return run(argv)
    except Exception as exc:
        print(f"[import-providers] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
