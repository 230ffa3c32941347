from __future__ import annotations

import argparse

from leadgen_pipeline.pipeline import run_once


def main() -> None:
    parser = argparse.ArgumentParser(description="Run quality processing, enrichment and alerts once")
    parser.add_argument("--scope", default=None, help="Optional scope key for job tracking")
    parser.add_argument("--quality-limit", type=int, default=None)
    parser.add_argument("--places-limit", type=int, default=None)
    parser.add_argument("--hunter-limit", type=int, default=None)
    parser.add_argument("--company-limit", type=int, default=None)
    parser.add_argument("--sweep-duplicates", action="store_true")
    parser.add_argument("--no-alerts", action="store_true", help="Do not deliver pending alerts")
    parser.add_argument("--daily-summary", action="store_true")
    args = parser.parse_args()

    result = run_once(
        scope=args.scope,
        quality_limit=args.quality_limit,
        places_limit=args.places_limit,
        hunter_limit=args.hunter_limit,
        company_limit=args.company_limit,
        sweep_duplicates=args.sweep_duplicates,
        send_alerts=not args.no_alerts,
        daily_summary=args.daily_summary,
    )

    print(f"Businesses processed: {result['processed']} (errors: {result['errors']})")
    print(f"High-priority leads: {result['high_priority_found']}")
    print(f"Duplicates found: {result['duplicates_found']}")
    print(
        f"Enriched: places {result['places_enriched']}, "
        f"hunter {result['hunter_enriched']}, company {result['company_enriched']}"
    )
    print(f"Alerts sent: {result['alerts_sent']}")
    if result["skipped"]:
        print(f"Skipped (not configured): {', '.join(result['skipped'])}")


if __name__ == "__main__":
    main()
