"""
logging_config.py — Centralized Logging Configuration for the Sale Service

This module configures unified logging behavior for the entire application.
It ensures that all modules log messages consistently to both console and file.

Features:
    • Combined console and file logging output
    • Process ID tagging for multi-process visibility
    • Standardized log format for all modules
    • Reduced verbosity for the HTTP client libraries (httpx, httpcore)
"""

import logging
import os
import sys

LOG_FILE = os.environ.get("SALE_LOG_FILE", "sale_processing.log")


def setup_logging():
    """
    Configures the global logging system for the application.

    The configuration includes:
        - Log level: INFO (default)
        - Log format: timestamp, log level, process ID, and message
        - Output destinations:
            1. File: SALE_LOG_FILE, 'sale_processing.log' by default (persistent log)
            2. Console (stdout): real-time logs, Docker/Kubernetes compatible
        - Reduced verbosity for third-party libraries such as httpx
    """
    log_format = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

    logging.basicConfig(
        level=logging.INFO,
        format=log_format,
        handlers=[
            # File output
            logging.FileHandler(LOG_FILE),
            # Console output (stdout, Docker-compatible)
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Reduce verbosity from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

