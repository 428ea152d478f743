import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configures logging for the application.
    """
    logging.basicConfig(
        level=log_level.upper(),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )

    # Quieten down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
