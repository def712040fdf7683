#!/usr/bin/env python3
"""Entry point to run the job monitor.

Usage:
  python run_monitor.py                  # poll every interval_minutes from config/settings.yaml
  python run_monitor.py --once           # one fetch cycle, then exit
  python run_monitor.py --interval 10 --source mock
"""
from __future__ import annotations

import argparse
import sys

from gigscout.config import ensure_dirs, load_settings
from gigscout.log import get_logger
from gigscout.monitor import JobMonitor

log = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Fetch, score and distribute freelance job postings.")
    p.add_argument("--once", action="store_true", help="run a single fetch cycle and exit")
    p.add_argument("--interval", type=float, help="minutes between fetch cycles")
    p.add_argument("--source", choices=["upwork", "mock"], help="job source to poll")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    if args.interval is not None:
        if args.interval <= 0:
            log.error("--interval must be positive")
            return 2
        settings["monitor"]["interval_minutes"] = args.interval
    if args.source:
        settings["fetch"]["source"] = args.source

    ensure_dirs()
    monitor = JobMonitor.from_settings(settings)

    if args.once:
        summary = monitor.run_cycle() or {}
        log.info("Run complete.")
        log.info("  Jobs fetched: %d", summary.get("fetched", 0))
        log.info("  New jobs stored: %d", summary.get("processed", 0))
        log.info("  Already seen: %d", summary.get("skipped", 0))
        log.info("  Failed: %d", summary.get("failed", 0))
        return 1 if summary.get("error") else 0

    if not monitor.start(run_immediately=bool(settings["monitor"].get("run_immediately", True))):
        log.error("Job monitor not started; is another one already running?")
        return 1
    try:
        monitor.wait()
    except KeyboardInterrupt:
        log.info("Interrupted — finishing the current cycle")
        monitor.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
