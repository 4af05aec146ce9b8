from __future__ import annotations

import argparse
import json
import os
import sys
import time
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..config import load_default_sync_url, load_http_timeout, load_sync_debounce
from ..domain.models import SyncStatus
from ..extraction import ReportExtractor, build_recognizer, expand_sources
from ..logging import get_logger
from ..orchestrator import (
    BackupImportError,
    CollectionController,
    LocalStore,
    RemoteSyncEngine,
    ScanEventListener,
    summarize_reports,
)
from ..paths import expand_abs
from ..remote.client import RemoteStoreClient

LOG = get_logger("cli-main")

Handler = Callable[[CollectionController, argparse.Namespace], int]


def build_controller(script_dir: str, *, db_path: Optional[str] = None, with_extractor: bool = False) -> CollectionController:
    """Assemble store, remote client, sync engine and (optionally) the extractor."""
    store = LocalStore(script_dir, db_path=db_path)
    client = RemoteStoreClient(timeout=load_http_timeout(script_dir))
    sync = RemoteSyncEngine(client, quiet_period=load_sync_debounce(script_dir))
    extractor = ReportExtractor(build_recognizer(script_dir)) if with_extractor else None
    return CollectionController(
        store,
        extractor=extractor,
        sync=sync,
        default_sync_url=load_default_sync_url(script_dir),
    )


def _with_controller(handler: Handler, *, with_extractor: bool = False) -> Callable[[argparse.Namespace], int]:
    def _run(ns: argparse.Namespace) -> int:
        script_dir = os.getcwd()
        try:
            controller = build_controller(script_dir, db_path=ns.db_path, with_extractor=with_extractor)
        except RuntimeError as e:
            LOG.error(str(e))
            return 2
        controller.start()
        try:
            return handler(controller, ns)
        finally:
            controller.flush()
            controller.teardown()

    return _run


def _fmt_ms(value: Optional[int]) -> str:
    if value is None:
        return "never"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Collection commands
# ---------------------------------------------------------------------------
def _ingest(controller: CollectionController, ns: argparse.Namespace) -> int:
    paths = expand_sources(ns.sources)
    if not paths:
        LOG.error("No documents found in the given sources")
        return 1
    result = controller.ingest_batch(paths, progress=print)
    for report in result.accepted:
        print(f"{report.id}  {report.aircraft_id or '?'}  {report.flight_number or '?'}  {report.date or '?'}")
    if result.summary:
        print(result.summary)
    return 0 if result.success_count > 0 else 1


def _watch(controller: CollectionController, ns: argparse.Namespace) -> int:
    try:
        listener = ScanEventListener(
            watch_dir=expand_abs(ns.watch_dir),
            poll_interval_sec=ns.interval,
            include_existing=ns.include_existing,
        )
    except NotADirectoryError as e:
        LOG.error(str(e))
        return 2
    LOG.info("Press Ctrl+C to stop.")
    try:
        while True:
            new_paths = listener.scan_once()
            if new_paths:
                result = controller.ingest_batch(new_paths, progress=print)
                if result.summary:
                    print(result.summary)
            time.sleep(listener.poll_interval_sec)
    except KeyboardInterrupt:
        LOG.info("Watch mode interrupted by user. Exiting.")
    return 0


def _list(controller: CollectionController, ns: argparse.Namespace) -> int:
    records = controller.records
    if ns.json:
        print(json.dumps([r.as_dict() for r in records], ensure_ascii=False, indent=2))
        return 0
    if not records:
        print("No reports stored.")
        return 0
    for r in records:
        print(
            f"{r.id}  {r.date or '-':<10}  {r.aircraft_id or '-':<8}  {r.flight_number or '-':<8}  "
            f"{r.city_pair or '-':<9}  faults={len(r.faults)} failures={len(r.failures)}"
        )
    return 0


def _remove(controller: CollectionController, ns: argparse.Namespace) -> int:
    if controller.remove_record(ns.report_id):
        print(f"Removed {ns.report_id}")
    else:
        print(f"No report with id {ns.report_id}")
    return 0


def _clear(controller: CollectionController, ns: argparse.Namespace) -> int:
    if not ns.yes:
        LOG.error("Refusing to clear all reports without --yes")
        return 2
    controller.clear_all()
    print("All reports cleared.")
    return 0


def _export(controller: CollectionController, ns: argparse.Namespace) -> int:
    path = controller.export_backup(expand_abs(ns.output_dir))
    print(path)
    return 0


def _confirm_import(count: int) -> bool:
    answer = input(f"Found {count} reports. This will REPLACE current data. Continue? [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def _import(controller: CollectionController, ns: argparse.Namespace) -> int:
    confirm = (lambda _count: True) if ns.yes else _confirm_import
    try:
        imported = controller.import_backup(expand_abs(ns.file), confirm=confirm)
    except BackupImportError as e:
        LOG.error(str(e))
        print("Error parsing backup file.")
        return 1
    if imported is None:
        print("Import cancelled.")
        return 1
    print(f"Imported {imported} report(s).")
    return 0


def _summary(controller: CollectionController, ns: argparse.Namespace) -> int:
    print(json.dumps(summarize_reports(controller.records, top=ns.top), ensure_ascii=False, indent=2))
    return 0


# ---------------------------------------------------------------------------
# Sync commands
# ---------------------------------------------------------------------------
def _print_sync_state(controller: CollectionController) -> None:
    state = controller.sync_state
    print(f"endpoint  : {state.endpoint or '(local only)'}")
    print(f"status    : {state.status.value}")
    print(f"last sync : {_fmt_ms(state.last_sync_time)}")


def _sync_set(controller: CollectionController, ns: argparse.Namespace) -> int:
    state = controller.configure_sync(ns.url)
    _print_sync_state(controller)
    return 1 if state.status is SyncStatus.ERROR else 0


def _sync_clear(controller: CollectionController, ns: argparse.Namespace) -> int:
    controller.configure_sync(None)
    _print_sync_state(controller)
    return 0


def _sync_pull(controller: CollectionController, ns: argparse.Namespace) -> int:
    ok = controller.sync_now()
    _print_sync_state(controller)
    return 0 if ok else 1


def _sync_status(controller: CollectionController, ns: argparse.Namespace) -> int:
    _print_sync_state(controller)
    return 0


def _add_sync_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    sync = subparsers.add_parser("sync", help="Configure and run replication with a remote store.")
    sync_sub = sync.add_subparsers(dest="sync_command", required=True)

    set_cmd = sync_sub.add_parser("set", help="Persist an endpoint URL and pull from it")
    set_cmd.add_argument("url")
    set_cmd.set_defaults(handler=_with_controller(_sync_set))

    clear_cmd = sync_sub.add_parser("clear", help="Forget the endpoint and run local-only")
    clear_cmd.set_defaults(handler=_with_controller(_sync_clear))

    pull_cmd = sync_sub.add_parser("pull", help="Pull the remote collection now")
    pull_cmd.set_defaults(handler=_with_controller(_sync_pull))

    status_cmd = sync_sub.add_parser("status", help="Show endpoint, status and last sync time")
    status_cmd.set_defaults(handler=_with_controller(_sync_status))


def _serve(ns: argparse.Namespace) -> int:
    from ..server.app import create_app
    import uvicorn

    app = create_app(
        root_dir=os.getcwd(),
        db_path=ns.server_db,
        allow_origins=ns.allow_origins,
    )
    uvicorn.run(app, host=ns.host, port=ns.port, log_level=ns.log_level)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aerolog",
        description="Ingest post-flight report scans and keep the collection in sync with a remote store.",
    )
    parser.add_argument("--db-path", help="Override the local store file (default: var/aerolog_db/aerolog.sqlite3)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Extract reports from image/PDF scans, one at a time.")
    ingest.add_argument("sources", nargs="+", help="Files or directories with scans")
    ingest.set_defaults(handler=_with_controller(_ingest, with_extractor=True))

    watch = subparsers.add_parser("watch", help="Watch a folder and ingest new scans as they appear.")
    watch.add_argument("--watch-dir", required=True)
    watch.add_argument("--interval", type=float, default=2.0, help="Polling interval in seconds")
    watch.add_argument("--include-existing", action="store_true", help="Also ingest files already present")
    watch.set_defaults(handler=_with_controller(_watch, with_extractor=True))

    list_cmd = subparsers.add_parser("list", help="List stored reports, newest first.")
    list_cmd.add_argument("--json", action="store_true", help="Print the collection as JSON")
    list_cmd.set_defaults(handler=_with_controller(_list))

    remove = subparsers.add_parser("remove", help="Remove one report by id.")
    remove.add_argument("report_id")
    remove.set_defaults(handler=_with_controller(_remove))

    clear = subparsers.add_parser("clear", help="Remove every stored report.")
    clear.add_argument("--yes", action="store_true", help="Confirm clearing all reports")
    clear.set_defaults(handler=_with_controller(_clear))

    export = subparsers.add_parser("export", help="Write a dated JSON backup of the collection.")
    export.add_argument("--output-dir", default=".", help="Directory for the backup file")
    export.set_defaults(handler=_with_controller(_export))

    import_cmd = subparsers.add_parser("import", help="Replace the collection with a JSON backup.")
    import_cmd.add_argument("file")
    import_cmd.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    import_cmd.set_defaults(handler=_with_controller(_import))

    summary = subparsers.add_parser("summary", help="Print fleet-level fault and failure counts.")
    summary.add_argument("--top", type=int, default=5, help="Number of ATA chapters to list")
    summary.set_defaults(handler=_with_controller(_summary))

    _add_sync_cli(subparsers)

    serve = subparsers.add_parser("serve", help="Run the reference remote store over HTTP.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8010)
    serve.add_argument("--log-level", default="info")
    serve.add_argument("--server-db", help="Override the server's store file (default: var/aerolog_server/)")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve.set_defaults(handler=_serve)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.info(f"CLI invoked with arguments: {provided}")

    args = build_parser().parse_args(provided)
    code = args.handler(args)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
