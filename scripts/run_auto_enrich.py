from __future__ import annotations

import argparse

from leadgen_pipeline.workers.auto_enrich import run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Enrich businesses with Hunter.io")
    parser.add_argument("--limit", type=int, default=None, help="Max businesses to enrich (0 = no limit)")
    parser.add_argument("--scope", default=None, help="Optional scope key for job tracking")
    args = parser.parse_args()

    stats = run_batch(limit=args.limit, scope=args.scope)
    if stats.get("error"):
        print(f"Skipped: {stats['error']}")
        return
    print(
        f"Processed {stats['processed']}: {stats['successful']} enriched, {stats['failed']} failed, "
        f"{stats['errors']} errors, {stats['api_calls']} API calls"
    )


if __name__ == "__main__":
    main()
