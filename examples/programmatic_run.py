"""Drive a run from Python instead of the CLI.

Repeats 500-request passes of POSTs for ten seconds and prints the status
tally. Run it with:

    python examples/programmatic_run.py http://localhost:8080/api/users
"""

from __future__ import annotations

import sys
from pathlib import Path

from batchload import LoadRunner, resolve_config


def main(url: str) -> None:
    config = resolve_config(
        url,
        method="POST",
        total_requests=500,
        batch_size=50,
        body_file=Path(__file__).with_name("body.json"),
        repeat=True,
        duration=10.0,
    )
    result = LoadRunner(config).run()

    summary = result.summary
    for status in summary.statuses.values():
        print(f"{status.status_code}: {status.count}")
    print(f"success rate: {summary.success_rate:.2f}% over {result.passes_completed} passes")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8080/")
