"""Utility script to prepare or inspect the configured document storage."""
from __future__ import annotations

import argparse
import json
import sys

from sqlalchemy.exc import SQLAlchemyError

from divine_panel.core.settings import settings
from divine_panel.db.session import create_tables, drop_tables, make_engine, make_session_factory
from divine_panel.services.persistence import ACCESS_KEY, SITE_STATE_KEY, DocumentStore


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Ensure, reset or inspect the document storage")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop the documents table before recreating it. Clears all clients, bans and state.",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Print the stored site state and access documents as JSON.",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to DATABASE_URL)",
    )
    args = parser.parse_args(argv)

    engine = make_engine(args.url or settings.database_url)
    try:
        if args.reset:
            drop_tables(engine)
            print("[ensure_db] dropped documents table")
        create_tables(engine)
        print(f"[ensure_db] storage ready at {engine.url}")

        if args.show:
            documents = DocumentStore(make_session_factory(engine))
            dump = {key: documents.load(key) for key in (SITE_STATE_KEY, ACCESS_KEY)}
            print(json.dumps(dump, indent=2, sort_keys=True))
    except SQLAlchemyError as exc:
        print(f"[ensure_db] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
