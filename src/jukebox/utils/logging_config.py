import logging
import os
from logging.handlers import RotatingFileHandler


def setup_logging(level: str = 'INFO', log_dir: str = 'logs'):
    """
    Configure logging for the bot with both file and console output.
    Creates rotating log files with a max size of 10MB, keeping 5 backup files.
    """
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'jukebox.log'),
        maxBytes=10_000_000,  # 10MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    # discord.py is chatty at DEBUG
    logging.getLogger('discord').setLevel(max(log_level, logging.INFO))
