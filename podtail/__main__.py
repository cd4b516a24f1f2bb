"""Entry point for `python -m podtail`.

Usage:
    python -m podtail [PATTERNS...] -n NAMESPACE
    uv run python -m podtail
"""

from __future__ import annotations

from podtail.cli import cli

cli()
