# listing_optimizer/utils.py
"""Shared utilities: the service logger and the retry decorator."""
import os
import logging
import time
from functools import wraps
from dotenv import load_dotenv

load_dotenv()

def get_logger(name=__name__):
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, level, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("listing-optimizer")

def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    """Retry the wrapped call on `exceptions` with exponential backoff.

    `tries` counts every attempt, so `tries=1` calls once. The last attempt
    runs outside the handler and its exception reaches the caller unchanged.
    """
    def deco_retry(f):
        name = getattr(f, "__qualname__", repr(f))

        @wraps(f)
        def f_retry(*args, **kwargs):
            remaining, wait = tries, delay
            while remaining > 1:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    remaining -= 1
                    logger.warning("%s failed: %s; retrying in %s sec (%d attempts left)", name, e, wait, remaining)
                    time.sleep(wait)
                    wait *= backoff
            return f(*args, **kwargs)
        return f_retry
    return deco_retry
