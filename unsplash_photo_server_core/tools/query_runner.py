"""Run ``search_photos`` once from the command line and print the tool envelope.

Arguments come from a JSON object (``--payload`` file or stdin) and/or
individual flags; flags win over payload keys. The process exits with 1 when
the envelope carries ``isError``.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

import anyio

FLAG_FIELDS = ("query", "page", "per_page", "order_by", "color", "orientation")


def _read_payload(payload_path: Path | None, allow_empty: bool) -> Dict[str, Any]:
    if payload_path is not None:
        raw = payload_path.read_text(encoding="utf-8")
    elif not sys.stdin.isatty():
        raw = sys.stdin.read()
    else:
        raw = ""

    if not raw.strip():
        if allow_empty:
            return {}
        raise SystemExit("Provide search arguments via --query, --payload or stdin.")

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON payload: {exc}") from exc

    if not isinstance(payload, dict):
        raise SystemExit("Payload must be a JSON object.")
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m unsplash_photo_server_core.tools.query_runner",
        description="Call the search_photos tool in-process and print its result envelope as JSON.",
    )
    parser.add_argument("--payload", type=Path, help="JSON file with tool arguments (default: stdin).")
    parser.add_argument("--query", help="Search keyword.")
    parser.add_argument("--page", help="Page number, passed through unparsed.")
    parser.add_argument("--per-page", dest="per_page", help="Results per page, passed through unparsed.")
    parser.add_argument("--order-by", dest="order_by", help="latest or relevant.")
    parser.add_argument("--color", help="Color filter.")
    parser.add_argument("--orientation", help="landscape, portrait or squarish.")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON output.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    flags = {name: getattr(args, name) for name in FLAG_FIELDS if getattr(args, name) is not None}
    arguments = _read_payload(args.payload, allow_empty=bool(flags))
    arguments.update(flags)

    # Imported late: the entry module reads .env and builds the client on import.
    from unsplash_photo_server import search_photos

    async def _call() -> Dict[str, Any]:
        result = await search_photos(**arguments)
        return result.model_dump(mode="json", exclude_none=True)

    envelope = anyio.run(_call)
    json.dump(envelope, sys.stdout, indent=2 if args.pretty else None, ensure_ascii=True)
    sys.stdout.write("\n")
    return 1 if envelope.get("isError") else 0


if __name__ == "__main__":
    raise SystemExit(main())
