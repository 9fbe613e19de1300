import logging

logger = logging.getLogger("libdigest")
