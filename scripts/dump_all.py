#!/usr/bin/env python3
"""Dump every collection the pyschoolbus client can fetch.

Runs the phased bootstrap, then prints each collection with its load
status, the parsed model fields **and** the raw API JSON so you can spot
fields that aren't parsed yet.

Usage
-----
Set environment variables and run::

    export SCHOOLBUS_BASE_URL="https://console.example.com/api"
    export SCHOOLBUS_OPERATOR_ID="ops@example.com"
    export SCHOOLBUS_SESSION_ID="..."
    python scripts/dump_all.py

Options::

    --school S1          Scope routes/trips and print stops for that school
    --entity students    Only dump this collection (repeatable; skips documents)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyschoolbus import EntityType, ResourceType, SchoolBusClient, SchoolBusConfig  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _print_record(record: Any, out: list[str]) -> dict[str, Any]:
    data = record.model_dump(mode="json")
    out.append(f"\n  --- {type(record).__name__} id={record.id} ---")
    for key, value in data.items():
        out.append(f"    {key}: {value}")
    extra = sorted(set(record.raw) - {f.alias or name for name, f in type(record).model_fields.items()})
    if extra:
        out.append(f"    (unparsed keys: {', '.join(extra)})")
    return data


def dump_collection(client: SchoolBusClient, entity: EntityType, *, json_mode: bool) -> dict[str, Any]:
    status = client.store.status(entity)
    records = client.store.get_all(entity)
    out: list[str] = [_section(f"{entity.value.upper()} ({len(records)})")]
    if status.error:
        out.append(f"  ERROR: {status.error}")
    entries: list[dict[str, Any]] = []
    for record in records:
        entries.append({"parsed": _print_record(record, out), "raw": record.raw})
    if not json_mode:
        print("\n".join(out))
    return {
        "error": status.error,
        "last_fetch": status.last_fetch.isoformat() if status.last_fetch else None,
        "records": entries,
    }


def dump_documents(client: SchoolBusClient, *, json_mode: bool) -> dict[str, Any]:
    out: list[str] = [_section("DOCUMENTS")]
    result: dict[str, Any] = {}
    for resource in ResourceType:
        status = client.store.status(resource)
        document = client.store.get_resource(resource)
        out.append(f"\n  --- {resource.value} ---")
        if status.error:
            out.append(f"  ERROR: {status.error}")
        parsed = document.model_dump(mode="json") if document is not None else None
        for key, value in (parsed or {}).items():
            out.append(f"    {key}: {value}")
        result[resource.value] = {
            "error": status.error,
            "parsed": parsed,
            "raw": document.raw if document is not None else None,
        }
    if not json_mode:
        print("\n".join(out))
    return result


def dump_stops(client: SchoolBusClient, *, json_mode: bool) -> dict[str, Any]:
    out: list[str] = [_section(f"ROUTE STOPS (school={client.selected_school_id})")]
    result: dict[str, Any] = {}
    for route in client.routes.items:
        stops = client.routes.stops(route.id)
        out.append(f"\n  {route.name} [{route.type}] {len(stops)} stop(s)")
        for stop in stops:
            out.append(f"    {stop.time}  {stop.name}  {stop.address}")
        result[route.id] = [s.model_dump(mode="json") for s in stops]
    if not json_mode:
        print("\n".join(out))
    return result


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump all data pyschoolbus can fetch for debugging / development.",
    )
    parser.add_argument("--school", help="Scope routes/trips to this school id")
    parser.add_argument(
        "--entity",
        action="append",
        choices=[e.value for e in EntityType],
        help="Only dump this collection (default: all)",
    )
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = SchoolBusConfig.from_env()
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "base_url": config.base_url,
        "path_style": config.path_style,
        "collections": {},
    }

    if not args.json_mode:
        print(_section("pyschoolbus dump_all"))
        print(f"  time      : {result['timestamp']}")
        print(f"  backend   : {config.base_url} ({config.path_style})")

    targets = [EntityType(e) for e in args.entity] if args.entity else list(EntityType)

    async with SchoolBusClient(config) as client:
        await client.initialize()
        client.select_school(args.school)

        for entity in targets:
            result["collections"][entity.value] = dump_collection(client, entity, json_mode=args.json_mode)

        if args.school:
            result["stops"] = dump_stops(client, json_mode=args.json_mode)

        if not args.entity:
            for resource in ResourceType:
                await client.fetch_resource(resource)
            result["documents"] = dump_documents(client, json_mode=args.json_mode)

    # ── Output ──
    payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    if args.json_mode and not args.output:
        print(payload)
    elif args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"JSON written to {args.output}", file=sys.stderr)


if __name__ == "__main__":
    asyncio.run(main())
