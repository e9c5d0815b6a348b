#!/usr/bin/env python3
"""
percosert.py — CLI narzędzie Percosert.

Działa lokalnie — łączy się bezpośrednio z percolatorem i PostgreSQL,
nie wymaga uruchomionego serwera API.

Konfiguracja: zmienne środowiskowe z prefiksem PERCOSERT_
lub plik .env (np. PERCOSERT_DB_URL=postgresql://...).

Podkomendy:
    submit  — percolate dokumentu i zapis z listą dopasowań
    get     — pobierz zapisany dokument
    health  — sprawdź połączenie z bazą i percolatorem

Użycie:
    python percosert.py submit logs entry --text '{"query": {"match_all": {}}, "title": "t"}'
    python percosert.py submit logs entry 42 --file doc.json --ttl 1d --refresh
    python percosert.py get logs entry 42
    python percosert.py health
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table


# -- helpers ---------------------------------------------------------------

_CONSOLE: Console | None = None


def _console() -> Console:
    global _CONSOLE
    if _CONSOLE is None:
        _CONSOLE = Console(highlight=False)
    return _CONSOLE


def _short(value: Any, limit: int = 64) -> str:
    s = str(value).replace("\n", " ").strip()
    if len(s) <= limit:
        return s
    return s[: limit - 3] + "..."


def _print_kv_table(title: str, rows: list[tuple[str, Any]]) -> None:
    table = Table(title=title, box=box.ASCII, show_header=False, pad_edge=False)
    table.add_column("Key", no_wrap=True, style="bold cyan")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(str(key), str(value))
    _console().print(table)


def _read_source(args: argparse.Namespace) -> dict[str, Any]:
    if getattr(args, "file", None):
        try:
            text = open(args.file, encoding="utf-8").read()
        except OSError as e:
            print(f"Błąd odczytu pliku: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        text = getattr(args, "text", None) or sys.stdin.read().strip()
    if not text:
        print("Błąd: podaj dokument przez --text, --file lub stdin", file=sys.stderr)
        sys.exit(1)
    try:
        source = json.loads(text)
    except json.JSONDecodeError as e:
        print(f"Błąd: dokument nie jest poprawnym JSON: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(source, dict):
        print("Błąd: dokument musi być obiektem JSON", file=sys.stderr)
        sys.exit(1)
    return source


def _submit_options(args: argparse.Namespace):
    from api.params import parse_time_ms
    from contracts import ConsistencyLevel, ReplicationType, SubmitOptions, VersionType

    try:
        return SubmitOptions(
            routing=args.routing,
            parent=args.parent,
            timestamp=args.timestamp,
            ttl_ms=parse_time_ms(args.ttl, "ttl"),
            timeout_ms=parse_time_ms(args.timeout, "timeout"),
            refresh=True if args.refresh else None,
            version=args.version or None,
            version_type=VersionType(args.version_type),
            replication=ReplicationType(args.replication) if args.replication else None,
            consistency=ConsistencyLevel(args.consistency) if args.consistency else None,
            write_mode=args.op_type,
            percolate=args.percolate,
        )
    except ValueError as e:
        print(f"Błąd parametrów: {e}", file=sys.stderr)
        sys.exit(2)


# -- commands --------------------------------------------------------------

async def _submit(args: argparse.Namespace) -> None:
    from api.main import build_document_store, build_matcher
    from config import Settings
    from contracts import DocumentIdentity, SubmittedDocument
    from core.percosert import PercosertService

    settings = Settings()
    doc = SubmittedDocument(
        identity=DocumentIdentity(index=args.index, doc_type=args.doc_type, doc_id=args.doc_id),
        source=_read_source(args),
        options=_submit_options(args),
    )

    store = await build_document_store(settings)
    matcher = build_matcher(settings)
    try:
        service = PercosertService(matcher, store, settings.default_write_timeout_ms)
        outcome = await service.submit(doc)
    finally:
        await matcher.close()
        await store.close()

    title = f"percosert [{outcome.status.value} {outcome.status.phrase}]"
    if args.json:
        print(json.dumps(outcome.to_response(), ensure_ascii=False, indent=2))
    elif outcome.error is not None:
        _print_kv_table(
            title,
            [
                ("kind", outcome.error.kind.value),
                ("reason", outcome.error.reason),
                ("message", outcome.error.message),
            ],
        )
    else:
        _print_kv_table(
            title,
            [
                ("_index", outcome.index),
                ("_type", outcome.doc_type),
                ("_id", outcome.doc_id),
                ("_version", outcome.version),
                ("matches", ", ".join(outcome.matches or []) or "-"),
            ],
        )
    if not outcome.ok:
        sys.exit(1)


async def _get(args: argparse.Namespace) -> None:
    from api.main import build_document_store
    from config import Settings
    from contracts import DocumentIdentity

    store = await build_document_store(Settings())
    try:
        doc = await store.get(DocumentIdentity(
            index=args.index, doc_type=args.doc_type, doc_id=args.doc_id,
        ))
    except KeyError as e:
        print(f"Błąd: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        await store.close()

    rows: list[tuple[str, Any]] = [
        ("_id", doc.identity.doc_id),
        ("_version", doc.version),
        ("_routing", doc.routing or "-"),
        ("_parent", doc.parent or "-"),
        ("_timestamp", doc.timestamp.isoformat()),
        ("expires_at", doc.expires_at.isoformat() if doc.expires_at else "-"),
    ]
    rows += [(f"  {k}", _short(json.dumps(v, ensure_ascii=False))) for k, v in doc.source.items()]
    _print_kv_table(f"{doc.identity.index}/{doc.identity.doc_type}", rows)


async def _health(args: argparse.Namespace) -> None:
    from api.main import build_document_store, build_matcher
    from config import Settings

    settings = Settings()
    failed = False

    try:
        store = await build_document_store(settings)
        ping = getattr(store, "ping", None)
        if ping is not None:
            await ping()
        await store.close()
        print(f"store:   ok ({settings.store_backend})")
    except Exception as exc:
        print(f"store:   error: {exc}", file=sys.stderr)
        failed = True

    matcher = build_matcher(settings)
    try:
        matcher_ping = getattr(matcher, "ping", None)
        if matcher_ping is not None and not await matcher_ping():
            print(f"matcher: unreachable ({settings.percolator_url})", file=sys.stderr)
            failed = True
        else:
            print(f"matcher: ok ({settings.matcher_backend})")
    finally:
        await matcher.close()

    if failed:
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="percosert",
        description="Percosert — CLI (lokalny, bez serwera API)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # submit
    p = sub.add_parser("submit", help="Percolate dokumentu i zapis z listą dopasowań")
    p.add_argument("index")
    p.add_argument("doc_type", metavar="type")
    p.add_argument("doc_id", metavar="id", nargs="?", default=None)
    p.add_argument("--text", "-t", help="Dokument JSON")
    p.add_argument("--file", "-f", help="Ścieżka do pliku z dokumentem JSON")
    p.add_argument("--routing")
    p.add_argument("--parent")
    p.add_argument("--timestamp")
    p.add_argument("--ttl", help="np. 10s, 5m, 1d")
    p.add_argument("--timeout", help="np. 500ms, 30s")
    p.add_argument("--refresh", action="store_true")
    p.add_argument("--version", type=int)
    p.add_argument("--version-type", default="internal", choices=["internal", "external"])
    p.add_argument("--op-type", default="percosert")
    p.add_argument("--replication", choices=["sync", "async", "default"])
    p.add_argument("--consistency", choices=["one", "quorum", "all", "default"])
    p.add_argument("--percolate")
    p.add_argument("--json", action="store_true", help="Wypisz surową odpowiedź JSON")

    # get
    p = sub.add_parser("get", help="Pobierz zapisany dokument")
    p.add_argument("index")
    p.add_argument("doc_type", metavar="type")
    p.add_argument("doc_id", metavar="id")

    # health
    sub.add_parser("health", help="Sprawdź połączenie z bazą i percolatorem")

    args = parser.parse_args()

    async_cmds = {
        "submit": _submit,
        "get":    _get,
        "health": _health,
    }
    asyncio.run(async_cmds[args.command](args))


if __name__ == "__main__":
    main()
