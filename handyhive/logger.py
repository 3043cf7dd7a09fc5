import logging

from handyhive.config import LOG_FILE, LOG_LEVEL

logging.basicConfig(
    format="%(filename)s - %(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.FileHandler(LOG_FILE), logging.StreamHandler()],
)
logging.getLogger().setLevel(LOG_LEVEL)
# passlib logs a traceback at DEBUG while probing the bcrypt backend
logging.getLogger("passlib").setLevel(logging.ERROR)


def get_logger(filename: str) -> logging.Logger:
    return logging.getLogger(filename)
