"""Rescale a running job from a controller written in Python.

The launcher pod of a Charm++ job started with ``++server ++server-port 1234``
accepts CCS requests. Run it with:

    python examples/rescale_launcher.py 10.0.0.12 4 6
"""

from __future__ import annotations

import logging
import sys

from ccsrescale import RescaleOutcome, resolve_request
from ccsrescale._internal.logging import setup_logging
from ccsrescale.engine.exchange import execute_rescale

CCS_PORT = "1234"


def main(argv: list[str]) -> int:
    host, old_count, new_count = argv
    setup_logging(logging.INFO)

    request = resolve_request(host, CCS_PORT, old_count, new_count)
    result = execute_rescale(request)
    if result.outcome is RescaleOutcome.NOOP:
        print("counts are equal; nothing to do")
        return 0
    if not result.ok:
        print(f"rescale {result.outcome.value} at {result.last_state.name}: {result.error}")
        return 1
    print(f"rescaled {request.describe()}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
