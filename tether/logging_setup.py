"""Root logging configuration shared by the CLI and the API server."""

import logging
from typing import Optional

from tether.config import config as default_config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or default_config.log_level).upper(),
        format=LOG_FORMAT,
    )
