import asyncio
import nest_asyncio
from dotenv import load_dotenv

load_dotenv()

from bot import GoldiesBot
from config import get_settings
from observability import setup_logging

nest_asyncio.apply()

if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    bot = GoldiesBot(settings)
    asyncio.run(bot.run())
