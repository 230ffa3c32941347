from __future__ import annotations

import argparse

from leadgen_pipeline.workers.company_enrich import run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Enrich businesses with Clearbit, Apollo and LinkedIn company data")
    parser.add_argument("--limit", type=int, default=None, help="Max businesses to enrich (0 = no limit)")
    parser.add_argument("--scope", default=None, help="Optional scope key for job tracking")
    parser.add_argument("--preferred", choices=["clearbit", "apollo"], default=None)
    args = parser.parse_args()

    stats = run_batch(limit=args.limit, scope=args.scope, preferred=args.preferred)
    if stats.get("error"):
        print(f"Skipped: {stats['error']}")
        return
    print(f"Processed {stats['processed']}: {stats['successful']} enriched, {stats['failed']} failed")


if __name__ == "__main__":
    main()
