from __future__ import annotations

import argparse

from leadgen_pipeline.workers.google_places import run_batch


def main() -> None:
    parser = argparse.ArgumentParser(description="Enrich businesses with Google Places listings")
    parser.add_argument("--limit", type=int, default=None, help="Max businesses to look up (0 = no limit)")
    parser.add_argument("--scope", default=None, help="Optional scope key for job tracking")
    parser.add_argument(
        "--missing",
        choices=["any", "phone", "website"],
        default="any",
        help="Only look up businesses missing this field",
    )
    args = parser.parse_args()

    stats = run_batch(limit=args.limit, scope=args.scope, missing=args.missing)
    if stats.get("error"):
        print(f"Skipped: {stats['error']}")
        return
    print(
        f"Processed {stats['processed']}: {stats['enriched']} enriched, "
        f"{stats['phones_added']} phones added, {stats['api_calls']} API calls"
    )


if __name__ == "__main__":
    main()
