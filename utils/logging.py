"""Module for configuring logging across the application.

A rotating file handler always records the session, and manual runs also get
a colored console handler. The level and the file location come from the
local_conf.json read by core.Logger.
"""
import logging
import os
from logging.handlers import RotatingFileHandler

FILE_FORMAT = "%(asctime)-15s - (%(filename)s:%(lineno)d) - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class CustomFormatter(logging.Formatter):
    """Console formatter coloring each record by level.

    DEBUG and INFO records are grey, WARNING yellow, ERROR red and CRITICAL bold red.
    Records above INFO also carry the file name and line number of the call.
    """
    RESET = "\x1b[0m"
    COLORS = {
        logging.DEBUG: "\x1b[38;21m",
        logging.INFO: "\x1b[38;21m",
        logging.WARNING: "\x1b[33;21m",
        logging.ERROR: "\x1b[31;21m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    info_format = "%(asctime)s - %(levelname)s - %(message)s"
    custom_format = info_format + " (%(filename)s:%(lineno)d)"

    def format(self, record):
        fmt = self.info_format if record.levelno == logging.INFO else self.custom_format
        color = self.COLORS.get(record.levelno, "")
        formatter = logging.Formatter(color + fmt + self.RESET, DATE_FORMAT)
        return formatter.format(record)


def setup_logging(console_log, log_level="INFO", log_file="log.txt"):
    """
    Set up the root logger.

    Args:
        console_log (bool): Flag indicating whether to also log to the console.
        log_level (str): Name of the logging level, unknown names fall back to INFO.
        log_file (str): Path of the rotating log file.

    Returns:
        int: The numeric logging level that was applied.
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    rotating_handler = RotatingFileHandler(
        filename=log_file,
        maxBytes=30*1024*1024,  # 30 MB
        backupCount=5
    )
    rotating_handler.setLevel(level)
    rotating_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    root = logging.getLogger("")
    root.setLevel(level)
    root.addHandler(rotating_handler)

    if console_log:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(CustomFormatter())
        root.addHandler(console)
    return level
