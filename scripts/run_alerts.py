from __future__ import annotations

import argparse

from leadgen_pipeline.workers.lead_alerts import run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Send pending lead alerts to Telegram")
    parser.add_argument("--limit", type=int, default=None, help="Max alerts to send")
    parser.add_argument("--daily-summary", action="store_true", help="Also send today's lead summary")
    args = parser.parse_args()

    stats = run_batch(limit=args.limit, daily_summary=args.daily_summary)
    if stats.get("error"):
        print(f"Skipped: {stats['error']}")
        return
    print(f"Alerts sent: {stats['sent']}, daily summary sent: {stats['summary_sent']}")


if __name__ == "__main__":
    main()
