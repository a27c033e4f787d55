import argparse
import json
import logging
import sys

from bulk_ingest.config import LOG_FORMAT, Settings
from bulk_ingest.errors import ArchiveDecodeError, ReconciliationError
from bulk_ingest.pipelines.batch import BatchCoordinator
from bulk_ingest.store.sqlite import SQLiteContentStore


def _ingest(args, settings: Settings) -> int:
    store = SQLiteContentStore(args.db or settings.db_path)
    coordinator = BatchCoordinator(store, settings, principal=args.principal)
    try:
        with open(args.archive, "rb") as fh:
            outcome = coordinator.run(fh)
    except ArchiveDecodeError as e:
        print(json.dumps(e.to_payload()), file=sys.stderr)
        return 2
    except ReconciliationError as e:
        print(json.dumps(e.to_payload()), file=sys.stderr)
        return 1
    finally:
        store.close()
    print(json.dumps(outcome.model_dump(), indent=2))
    return 0


def _serve(args, settings: Settings) -> int:
    import uvicorn
    uvicorn.run("bulk_ingest.api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv=None) -> int:
    settings = Settings.from_env()

    p = argparse.ArgumentParser(prog="bulk-ingest", description="Bulk content envelope ingestion")
    p.add_argument("--concurrency", type=int, default=settings.concurrency, help="Concurrent storage operations")
    p.add_argument("--log-level", type=str, default=settings.log_level)
    sub = p.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest a local archive into the SQLite content store")
    ingest.add_argument("archive", help="Path to a .tar or .tar.gz archive")
    ingest.add_argument("--db", type=str, default=None, help="SQLite database path")
    ingest.add_argument("--principal", type=str, default="cli", help="Label used in log output")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    args = p.parse_args(argv)
    settings.concurrency = max(1, args.concurrency)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    if args.command == "ingest":
        return _ingest(args, settings)
    return _serve(args, settings)


if __name__ == "__main__":
    sys.exit(main())
