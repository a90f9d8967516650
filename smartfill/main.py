from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any

import uvicorn

from smartfill.api import create_app
from smartfill.config import Settings, load_dotenv
from smartfill.logger import configure_logging
from smartfill.service import SmartFillService, reconcile_payload

logger = logging.getLogger(__name__)


def _read_json(path: str | None, default: Any) -> Any:
    if not path:
        return default
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _print_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def _parse_today(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"--today must be YYYY-MM-DD, got {value!r}") from exc


def run_extract(service: SmartFillService, text_path: str) -> int:
    text = Path(text_path).read_text(encoding="utf-8")
    fields = service.extract(text, document_id=Path(text_path).name)
    _print_json(fields.present())
    return 0


def run_reconcile(
    service: SmartFillService,
    *,
    text_path: str,
    form_path: str | None = None,
    vendors_path: str | None = None,
    today: date | None = None,
) -> int:
    text = Path(text_path).read_text(encoding="utf-8")
    document_id = Path(text_path).name
    form = _read_json(form_path, {})
    vendors = _read_json(vendors_path, None)
    if vendors is not None and not isinstance(vendors, list):
        raise ValueError("vendors file must contain a JSON array")

    extracted = service.extract(text, document_id=document_id)
    result = service.reconcile(form, extracted, vendors, today=today, document_id=document_id)
    _print_json(reconcile_payload(result))
    return 0


def run_serve(settings: Settings, service: SmartFillService) -> int:
    uvicorn.run(create_app(settings, service=service), host=settings.api_host, port=settings.api_port)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smart Fill document field extraction")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_cmd = subparsers.add_parser("extract", help="Extract fields from a text file")
    extract_cmd.add_argument("file")

    reconcile_cmd = subparsers.add_parser("reconcile", help="Extract and merge into an expense form")
    reconcile_cmd.add_argument("--text", required=True)
    reconcile_cmd.add_argument("--form")
    reconcile_cmd.add_argument("--vendors")
    reconcile_cmd.add_argument("--today", type=_parse_today)

    subparsers.add_parser("serve", help="Run the HTTP API")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    service = SmartFillService(settings)

    if args.command == "extract":
        return run_extract(service, args.file)
    if args.command == "reconcile":
        return run_reconcile(
            service,
            text_path=args.text,
            form_path=args.form,
            vendors_path=args.vendors,
            today=args.today,
        )
    if args.command == "serve":
        logger.info("Starting Smart Fill API on %s:%d", settings.api_host, settings.api_port)
        return run_serve(settings, service)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
