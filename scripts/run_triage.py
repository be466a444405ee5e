"""Google Photos triage runner.

Usage:
    python scripts/run_triage.py scan [--inline-delete] [--start-id ID] [--limit N] [--supervise]
    python scripts/run_triage.py download [--limit N]
    python scripts/run_triage.py delete [--limit N]
    python scripts/run_triage.py scan-dates [--start-id ID] [--limit N] [--supervise]
    python scripts/run_triage.py reconcile-dates
    python scripts/run_triage.py apply-dates [--limit N]
    python scripts/run_triage.py stats

Chrome must already be running with remote debugging (CRAWLER_CDP_URL) and be
logged in. Settings come from .env (CRAWLER_*, TRIAGE_*).

Exit codes:
    0   finished / nothing to do
    75  navigation stalled -- restart the process to resume from the ledger
    2   usage error

Ctrl+C or SIGTERM stops after the current item.
"""

import argparse
import asyncio
import io
import os
import signal
import sys
from pathlib import Path

_root = str(Path(__file__).resolve().parent.parent)
sys.path.insert(0, _root)
os.chdir(_root)
sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")

from dotenv import load_dotenv  # noqa: E402
load_dotenv(Path(_root) / ".env")

from loguru import logger  # noqa: E402
logger.remove()
logger.add(sys.stderr, level="INFO", format="{time:HH:mm:ss} | {level:<7} | {message}")

_logs_dir = Path(_root) / "logs"
_logs_dir.mkdir(exist_ok=True)
logger.add(
    str(_logs_dir / "triage_{time:YYYY-MM-DD}.log"),
    rotation="1 day",
    retention="7 days",
    level="DEBUG",
    encoding="utf-8",
)

from crawler.browser_session import BrowserSession  # noqa: E402
from crawler.google_photos import GooglePhotosDriver  # noqa: E402
from ledger import date_ledger, photo_ledger  # noqa: E402
from processor.checkpoint import resolve  # noqa: E402
from processor.config import processor_settings  # noqa: E402
from processor.date_reconciler import apply_corrections, resolve_targets  # noqa: E402
from processor.delete_sweep import run_delete_sweep  # noqa: E402
from processor.download_sweep import run_download_sweep  # noqa: E402
from processor.ledger_stats import format_counts, summarize_dates, summarize_photos  # noqa: E402
from processor.scan_engine import EXIT_STALLED, NavigationStalled, ScanEngine  # noqa: E402
from processor.scan_handlers import DateScanHandler, DownloadHandler, TriageHandler  # noqa: E402
from processor.supervisor import run_supervised  # noqa: E402


_engine: ScanEngine | None = None


def _handle_signal(sig, _frame):
    """Stop between items on SIGINT / SIGTERM; a second signal aborts."""
    sig_name = signal.Signals(sig).name
    if _engine is None or _engine.stop_requested:
        raise KeyboardInterrupt
    logger.info("Received {}, stopping after current item...", sig_name)
    _engine.request_stop()


# -- scan workflows --

async def _run_scan(args, ledger, make_handler) -> int:
    async def attempt(restart: int) -> None:
        global _engine
        # --start-id 는 첫 시도에만 적용, 재시작은 레저 기준
        start_id = args.start_id if restart == 0 else None
        async with BrowserSession() as page:
            driver = GooglePhotosDriver(page)
            handler = make_handler(driver, ledger)
            target = resolve(ledger, explicit_start_id=start_id, eligible=handler.checkpoint_eligible)
            _engine = ScanEngine(driver, handler)
            await _engine.run(target, limit=args.limit)

    if args.supervise:
        return await run_supervised(attempt, args.max_restarts, processor_settings.restart_delay_sec)

    try:
        await attempt(0)
    except NavigationStalled as e:
        logger.error(f"[scan] 정체로 종료 ({e}). 재실행하면 레저 기준으로 이어집니다.")
        return EXIT_STALLED
    return 0


async def cmd_scan(args) -> int:
    ledger = photo_ledger(processor_settings.photo_ledger_path())
    handler_cls = TriageHandler if args.inline_delete else DownloadHandler
    logger.info(f"[scan] mode={handler_cls.name}, ledger={ledger.path}")
    return await _run_scan(args, ledger, handler_cls)


async def cmd_scan_dates(args) -> int:
    ledger = date_ledger(processor_settings.date_ledger_path())
    logger.info(f"[scan] mode=dates, ledger={ledger.path}")
    return await _run_scan(args, ledger, DateScanHandler)


# -- batch passes --

async def cmd_download(args) -> int:
    ledger = photo_ledger(processor_settings.photo_ledger_path())
    async with BrowserSession() as page:
        await run_download_sweep(GooglePhotosDriver(page), ledger, limit=args.limit)
    return 0


async def cmd_delete(args) -> int:
    ledger = photo_ledger(processor_settings.photo_ledger_path())
    async with BrowserSession() as page:
        await run_delete_sweep(GooglePhotosDriver(page), ledger, limit=args.limit)
    return 0


async def cmd_reconcile_dates(args) -> int:
    dates = date_ledger(processor_settings.date_ledger_path())
    photos = photo_ledger(processor_settings.photo_ledger_path())
    async with BrowserSession() as page:
        counts = await resolve_targets(GooglePhotosDriver(page), dates, photos)
    logger.info(format_counts("reconcile-dates", counts))
    return 0


async def cmd_apply_dates(args) -> int:
    dates = date_ledger(processor_settings.date_ledger_path())
    async with BrowserSession() as page:
        await apply_corrections(GooglePhotosDriver(page), dates, limit=args.limit)
    return 0


async def cmd_stats(args) -> int:
    photos = photo_ledger(processor_settings.photo_ledger_path())
    dates = date_ledger(processor_settings.date_ledger_path())
    print(format_counts(str(photos.path), summarize_photos(photos.read_all())))
    print(format_counts(str(dates.path), summarize_dates(dates.read_all())))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Google Photos bulk triage")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_scan_options(p):
        p.add_argument("--start-id", default=os.getenv("START_ID"),
                       help="resume after this item id instead of the ledger checkpoint")
        p.add_argument("--limit", type=int, default=None, help="stop after N items")
        p.add_argument("--supervise", action="store_true",
                       help="restart with a fresh browser session on stall")
        p.add_argument("--max-restarts", type=int, default=processor_settings.max_restarts)

    p = sub.add_parser("scan", help="classify items, download non-free ones")
    p.add_argument("--inline-delete", action="store_true",
                   help="move each downloaded item to trash in the same pass")
    add_scan_options(p)
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("scan-dates", help="log displayed and filename capture dates")
    add_scan_options(p)
    p.set_defaults(func=cmd_scan_dates)

    p = sub.add_parser("download", help="retry non-free items whose download failed")
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=cmd_download)

    p = sub.add_parser("delete", help="trash items already downloaded")
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("reconcile-dates", help="find correction targets for skewed dates")
    p.set_defaults(func=cmd_reconcile_dates)

    p = sub.add_parser("apply-dates", help="write correction targets back")
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(func=cmd_apply_dates)

    p = sub.add_parser("stats", help="ledger summary")
    p.set_defaults(func=cmd_stats)

    return parser


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    return await args.func(args)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
