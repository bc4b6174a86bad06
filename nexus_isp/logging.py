# nexus_isp/logging.py
from __future__ import annotations

import logging
import sys

# named channels used across the package
CHANNELS = (
    "nexus.audit",
    "nexus.realtime",
    "nexus.services",
    "nexus.stores",
    "nexus.notify",
    "nexus.backend",
)


def setup_logging(debug: bool = False) -> None:
    """
    One stdout handler for the whole process (dev server, gunicorn, CLI).
    Lines look like: 2026-01-15 09:30:00 | WARNING | nexus.services | ...
    """
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,  # replace handlers Flask/gunicorn installed first
    )

    for noisy in ("werkzeug", "sqlalchemy.engine", "urllib3", "alembic.runtime.migration"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    for name in CHANNELS:
        logging.getLogger(name).setLevel(level)
