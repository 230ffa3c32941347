from __future__ import annotations

import argparse

from leadgen_pipeline.workers.business_quality import find_and_mark_duplicates, run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Normalize, validate, de-duplicate and score pending businesses")
    parser.add_argument("--limit", type=int, default=None, help="Max businesses to process (0 = no limit)")
    parser.add_argument("--scope", default=None, help="Optional scope key for job tracking")
    parser.add_argument("--sweep-duplicates", action="store_true", help="Also re-check every record for duplicates")
    args = parser.parse_args()

    stats = run_batch(limit=args.limit, scope=args.scope)
    print(
        f"Processed {stats['processed']} businesses, errors: {stats['errors']}, "
        f"high priority: {stats['high_priority_found']}, duplicates: {stats['duplicates_found']}"
    )
    if args.sweep_duplicates:
        sweep = find_and_mark_duplicates(scope=args.scope)
        print(
            f"Duplicate sweep checked {sweep['checked']}, marked {sweep['duplicates_found']}, "
            f"cleared {sweep['cleared']}, errors: {sweep['errors']}"
        )


if __name__ == "__main__":
    main()
