import logging

from jukebox.bot.client import JukeboxBot
from jukebox.utils.config import load_config
from jukebox.utils.logging_config import setup_logging


def main():
    """Main entry point for the bot."""
    config = load_config()
    setup_logging(config.get('log_level', 'INFO'))
    logging.getLogger(__name__).info(f"Downloads go to {config['download_dir']}")

    bot = JukeboxBot(config)
    bot.run()


if __name__ == '__main__':
    main()
