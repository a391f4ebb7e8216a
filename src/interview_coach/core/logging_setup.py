from __future__ import annotations

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """Install the console handler once; INTERVIEW_LOG_LEVEL overrides the default level."""
    if level is None:
        level = os.environ.get("INTERVIEW_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
