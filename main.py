#!/usr/bin/env python3
"""
filepath: main.py

Command-line front end for the Thai geography repository.

Loads a geography feed (JSON array or CSV), builds the in-memory index once, and
answers one query per invocation:

  check                     integrity report (exit 2 when counts fall short)
  provinces                 all provinces, Thai-collated
  districts CODE            districts of a province
  subdistricts CODE         subdistricts of a district
  search QUERY              up to 12 substring hits (Thai, English, postal)
  address [--province C] [--district C] [--subdistrict C]
                            formatted address line for a selection

Why:
  The repository is a library boundary; this thin layer plays the part of the
  picker UI so the same calls can be scripted and smoke-tested.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional, Sequence

from geography_loader import GeographyLoadError
from geography_repository import GeographyRepository

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="thai-geography", description="Thai province/district/subdistrict lookup")
    ap.add_argument("--data", default="geography.json", help="geography feed (.json or .csv)")
    ap.add_argument("--json", action="store_true", help="print JSON instead of text")
    ap.add_argument("--log-level", default="WARNING", help="logging level (DEBUG, INFO, WARNING, ...)")

    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("check", help="compare counts with 77/928/7436")
    sub.add_parser("provinces", help="list provinces")
    p = sub.add_parser("districts", help="list districts of a province")
    p.add_argument("province_code")
    p = sub.add_parser("subdistricts", help="list subdistricts of a district")
    p.add_argument("district_code")
    p = sub.add_parser("search", help="free-text / postal search")
    p.add_argument("query", nargs="+")
    p = sub.add_parser("address", help="format an address from codes")
    p.add_argument("--province")
    p.add_argument("--district")
    p.add_argument("--subdistrict")
    return ap


def _emit(payload: Any, as_json: bool, lines: List[str]) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        for line in lines:
            print(line)


def _entity_line(e: Any) -> str:
    text = f"{e.code}\t{e.name_th or ''} ({e.name_en or ''})"
    postal = getattr(e, "postal", None)
    return f"{text} {postal}" if postal else text


def run(repo: GeographyRepository, args: argparse.Namespace) -> int:
    """Execute one subcommand against a built repository; returns the exit code."""
    cmd = args.command

    if cmd == "check":
        report = repo.integrity_report()
        _emit(report.to_dict(), args.json, [
            f"provinces:    {report.province_count} (expected {report.expected_provinces})",
            f"districts:    {report.district_count} (expected {report.expected_districts})",
            f"subdistricts: {report.subdistrict_count} (expected {report.expected_subdistricts})",
            "passed" if report.passed else "FAILED: data may be incomplete",
        ])
        return 0 if report.passed else 2

    if cmd in ("provinces", "districts", "subdistricts"):
        if cmd == "provinces":
            items = repo.get_provinces()
        elif cmd == "districts":
            items = repo.get_districts(args.province_code)
        else:
            items = repo.get_subdistricts(args.district_code)
        _emit([e.to_dict() for e in items], args.json, [_entity_line(e) for e in items])
        return 0

    if cmd == "search":
        hits = repo.search(" ".join(args.query))
        lines = [f"{h.display_text()}\t[{h.kind_label}]" for h in hits] or ["ไม่พบผลลัพธ์"]
        _emit([h.to_dict() for h in hits], args.json, lines)
        return 0

    if cmd == "address":
        selection = repo.select(args.province, args.district, args.subdistrict)
        _emit(selection.to_dict(), args.json, [selection.label() or "ยังไม่มีการเลือก"])
        return 0

    logger.error("Unknown command: %s", cmd)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))

    try:
        repo = GeographyRepository.from_file(args.data)
    except GeographyLoadError as e:
        logger.error("Failed loading geography data: %s", e)
        return 1

    return run(repo, args)


if __name__ == "__main__":
    sys.exit(main())
