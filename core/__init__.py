import os
import logging


logging.basicConfig(
    filename=os.environ.get("CADENCE_LOG_FILE", "player_logs.log"),
    format='[{levelname}] [{asctime}] {message}',
    style='{',
    datefmt='%Y-%m-%d %H:%M:%S',
    filemode='w'
)

logger = logging.getLogger("cadence")
logger.setLevel(os.environ.get("CADENCE_LOG_LEVEL", "DEBUG").upper())
