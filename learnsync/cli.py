import argparse
import sys

from learnsync.config import LOCAL_CACHE_URL, SERVICE_BASE_URL
from learnsync.engine.gateway import ProgressServiceClient
from learnsync.engine.progress_cache import ProgressCache
from learnsync.engine.reconciler import ProgressReconciler
from learnsync.engine.storage import SqlStore
from learnsync.logging_setup import setup_console_logging
from learnsync.utils.json_utils import json_dump


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quiz attempts and lecture progress sync")
    parser.add_argument(
        "--cache-url",
        default=LOCAL_CACHE_URL,
        help="Database URL of the local progress cache",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the quiz and progress services")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    record = commands.add_parser("record", help="Cache one playback position locally")
    record.add_argument("--course", required=True, help="Course id")
    record.add_argument("--lecture", required=True, help="Lecture id")
    record.add_argument("--time", type=float, required=True, help="Playback position, seconds")
    record.add_argument("--duration", type=float, required=True, help="Lecture length, seconds")
    record.add_argument("--completed", action="store_true", help="Mark the lecture completed")

    sync = commands.add_parser("sync", help="Merge cached progress into the progress service")
    sync.add_argument("--course", required=True, help="Course id")
    sync.add_argument("--user", required=True, help="Learner id sent as X-User-Id")
    sync.add_argument("--base-url", default=SERVICE_BASE_URL, help="Service base URL")

    show = commands.add_parser("show", help="Print cached progress of a course")
    show.add_argument("--course", required=True, help="Course id")
    return parser.parse_args(argv)


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("learnsync.app:app", host=args.host, port=args.port)
    return 0


def run_record(args: argparse.Namespace, cache: ProgressCache) -> int:
    record = cache.record(
        args.course, args.lecture, args.time, args.duration, completed_override=args.completed
    )
    print(json_dump(record.model_dump()))
    return 0


def run_sync(args: argparse.Namespace, cache: ProgressCache) -> int:
    client = ProgressServiceClient(args.user, base_url=args.base_url)
    reconciler = ProgressReconciler(args.course, cache, client)
    result = reconciler.reconcile()
    if not result.ok:
        print(f"Sync failed ({result.error.code}): {result.error.message}", file=sys.stderr)
        return 1

    certificate = reconciler.certificate
    print(json_dump(result.value.model_dump()))
    print(
        f"Certificate: {certificate.progress_percent}% "
        f"eligible={certificate.eligible} downloadable={certificate.can_download}"
    )
    for reason in certificate.reasons:
        print(f"  - {reason}")
    return 0


def run_show(args: argparse.Namespace, cache: ProgressCache) -> int:
    records = cache.list_course(args.course)
    if not records:
        print(f"No cached progress for course {args.course}")
        return 0
    print(json_dump({key: record.model_dump() for key, record in records.items()}))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_console_logging()
    if args.command == "serve":
        return run_serve(args)

    cache = ProgressCache(SqlStore.from_url(args.cache_url))
    if args.command == "record":
        return run_record(args, cache)
    if args.command == "sync":
        return run_sync(args, cache)
    return run_show(args, cache)


if __name__ == "__main__":
    sys.exit(main())
