# utils/logger.py
import os
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(
    logger_name: str,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    log_dir: Optional[str] = "logs"
) -> logging.Logger:
    """
    Set up and return a warehouse logger with file and console handlers.

    Args:
        logger_name: Name of the logger (e.g. "SilverLayer")
        log_file: Optional specific log filename (default: {logger_name}.log)
        level: Logging level (default: INFO)
        log_dir: Directory for log files (default: logs). Pass None for console only.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates if logger already exists
    if logger.handlers:
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        if log_file is None:
            log_file = f"{logger_name.lower().replace(' ', '_')}.log"
        log_path = os.path.join(log_dir, log_file)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info(f"Log file is being saved to: {os.path.abspath(log_path)}")

    return logger


def setup_pipeline_loggers(
    log_dir: Optional[str] = "logs",
    level: int = logging.INFO
) -> logging.Logger:
    """
    Configure the per-layer loggers used by the warehouse and return the pipeline logger.

    All layers write to the same ``dwh_pipeline.log`` file.
    """
    for name in ("BronzeLayer", "SilverLayer", "GoldLayer"):
        setup_logger(name, log_file="dwh_pipeline.log", level=level, log_dir=log_dir)
    return setup_logger("ETL_Pipeline", log_file="dwh_pipeline.log", level=level, log_dir=log_dir)
