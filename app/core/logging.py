import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO"):
    """Configure root logging once for the whole service."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # sqlalchemy echo output is controlled by DB_ECHO, keep its loggers quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
