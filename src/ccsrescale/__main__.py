"""Allow ``python -m ccsrescale``."""

from __future__ import annotations

from ccsrescale.cli.app import app

app(prog_name="ccs-rescale")
