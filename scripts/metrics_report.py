from __future__ import annotations

import json

from leadgen_pipeline.metrics import collect_metrics


def main() -> None:
    print(json.dumps(collect_metrics(), indent=2, default=str))


if __name__ == "__main__":
    main()
