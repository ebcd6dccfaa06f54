# lotkeeper/utils/logger.py

import logging
import os
from datetime import datetime


def setup_logger(name="lotkeeper", log_dir="logs", console_level=logging.INFO):
    logger = logging.getLogger(name)

    # If logger already has handlers, don't add more to avoid duplicate logs
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # File Handler (skipped when log_dir is None)
    if log_dir:
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        log_filename = os.path.join(
            log_dir, f"{name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        )
        fh = logging.FileHandler(log_filename)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    # Console Handler
    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    return logger
