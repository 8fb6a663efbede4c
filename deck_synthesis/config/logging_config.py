"""
Environment-specific logging configuration
"""
import logging
import os
from typing import Dict, Any, Optional

# Stages that log a line per slide or per record; quiet in production
NOISY_MODULES = [
    "deck_synthesis.services.design_stream_parser",
    "deck_synthesis.services.delta_stream_parser",
    "deck_synthesis.services.delta_reconciler",
]


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration based on environment"""

    is_production = os.getenv("ENV") == "production"
    is_debug = os.getenv("DEBUG", "false").lower() == "true"

    config = {
        "production": {
            "default_level": "WARNING",
            "console_format": "%(levelname)s - %(message)s",
            "suppress_modules": NOISY_MODULES,
        },
        "development": {
            "default_level": "INFO",
            "console_format": "%(asctime)s - %(levelname)s - %(message)s",
            "suppress_modules": [],
        },
        "debug": {
            "default_level": "DEBUG",
            "console_format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
            "suppress_modules": [],
        },
    }

    if is_debug:
        environment = "debug"
    elif is_production:
        environment = "production"
    else:
        environment = "development"

    selected_config = dict(config[environment])
    selected_config["environment"] = environment
    return selected_config


def apply_logging_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Apply logging configuration to Python's logging system"""
    if config is None:
        config = get_logging_config()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config["default_level"]))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(config["console_format"]))

    # Replace whatever setup_logging installed
    root_logger.handlers = []
    root_logger.addHandler(console_handler)

    for module in config.get("suppress_modules", []):
        logging.getLogger(module).setLevel(logging.WARNING)

    return config
