# main.py
import logging
from coincatcher.bot import CoinCatcherBot
from coincatcher.config import Config, setup_logging


def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        Config.validate()
        # run_polling owns the event loop
        bot = CoinCatcherBot()
        logger.info("Starting bot...")
        bot.run()
    except Exception as e:
        logger.error(f"Error starting bot: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
