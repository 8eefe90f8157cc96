import yaml
import os
import shutil
import logging
from typing import Optional
from dotenv import load_dotenv

"""
Bot configuration management.

Configuration comes from environment variables (optionally loaded from a .env
file) in development, and from config/config.yaml merged over the same
environment defaults in production.
"""

logger = logging.getLogger(__name__)


def get_ffmpeg_path() -> str:
    """
    Get the FFmpeg executable, checking FFMPEG_PATH first, then PATH.
    """
    env_ffmpeg = os.getenv('FFMPEG_PATH')
    if env_ffmpeg:
        logger.debug(f"Checking FFmpeg from environment variable: {env_ffmpeg}")
        if os.path.exists(env_ffmpeg):
            logger.info(f"Found FFmpeg from environment variable: {env_ffmpeg}")
            return env_ffmpeg
        logger.warning(f"FFMPEG_PATH points to a missing file: {env_ffmpeg}")

    system_ffmpeg = shutil.which('ffmpeg')
    if system_ffmpeg:
        logger.info(f"Found FFmpeg on PATH: {system_ffmpeg}")
        return system_ffmpeg

    logger.warning("No FFmpeg found, falling back to bare 'ffmpeg'")
    return 'ffmpeg.exe' if os.name == 'nt' else 'ffmpeg'


def _default_config() -> dict:
    return {
        'bot_token': os.getenv('DISCORD_TOKEN'),
        'command_prefix': os.getenv('BOT_PREFIX', '!'),
        'download_dir': os.getenv('DOWNLOAD_DIR', './downloads'),
        'ffmpeg_path': get_ffmpeg_path(),
        'audio_bitrate': os.getenv('AUDIO_BITRATE', '192k'),
        'transcode_timeout': int(os.getenv('TRANSCODE_TIMEOUT', 600)),
        'log_level': os.getenv('LOG_LEVEL', 'INFO'),
        'debug': os.getenv('DEBUG', 'false').lower() == 'true'
    }


def load_config(env_path: str = '.env', config_path: Optional[str] = None) -> dict:
    """
    Loads configuration from either .env file (development) or config.yaml (production).

    Args:
        env_path: Path of the .env file to load if it exists
        config_path: Path of the YAML file used in production mode

    Returns:
        dict: Dictionary containing bot configuration

    Raises:
        ValueError: If no bot token is configured
    """
    if os.path.exists(env_path):
        logger.debug(f"Loading .env file from: {env_path}")
        load_dotenv(env_path)

    is_dev = os.getenv('BOT_ENV', '').lower() == 'development'
    logger.info(f"Running in {'development' if is_dev else 'production'} mode")

    config = _default_config()

    if not is_dev:
        config_path = config_path or os.path.join('config', 'config.yaml')
        if os.path.exists(config_path):
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    yaml_config = yaml.safe_load(f)
                config = {**config, **(yaml_config or {})}
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Error loading {config_path}: {e}")

    if not config.get('bot_token'):
        raise ValueError("Bot token is required in configuration")

    config['transcode_timeout'] = int(config['transcode_timeout'])
    return config
