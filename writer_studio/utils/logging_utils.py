import logging
import logging.config
from pathlib import Path
from typing import Optional

import yaml

from ..config.settings import get_settings

# The JSON formatter referenced by logging_config.yaml comes from python-json-logger.


def setup_logging(config_path: Optional[Path] = None, level: Optional[str] = None) -> None:
    """
    Set up logging configuration from a YAML file.

    Args:
        config_path (Path, optional): Path to the logging configuration YAML file.
            Defaults to ``LOGGING_CONFIG_PATH`` from settings.
        level (str, optional): Overrides the level of the ``writer_studio`` logger.
    """
    settings = get_settings()
    config_path = Path(config_path or settings.LOGGING_CONFIG_PATH)
    level = (level or settings.LOG_LEVEL).upper()

    if config_path.exists():
        try:
            with open(config_path, "rt") as f:
                log_config = yaml.safe_load(f.read())
            logging.config.dictConfig(log_config)
            logging.getLogger("writer_studio").setLevel(level)
            logging.info(f"Logging configured successfully from {config_path}")
        except Exception as e:
            logging.basicConfig(level=level)
            logging.error(f"Error loading logging configuration from {config_path}: {e}. Using basicConfig.")
    else:
        logging.basicConfig(level=level)
        logging.warning(f"Logging configuration file not found at {config_path}. Using basicConfig.")
