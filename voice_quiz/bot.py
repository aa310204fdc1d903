"""Main entry point for Voice Quiz Bot."""
import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from voice_quiz.config import settings
from voice_quiz.core import database

# Import handlers
from voice_quiz.handlers import auth, dashboard, generate, quiz, start, transcribe, upload
from voice_quiz.middleware.session import SessionMiddleware
from voice_quiz.utils.session_store import SessionStore


def setup_logging() -> None:
    """Log to stdout, and to LOG_FILE when it is set."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


logger = logging.getLogger(__name__)


async def main():
    """Main function to start the bot."""
    if not settings.BOT_TOKEN:
        logger.error("BOT_TOKEN is not set. Create a .env file from .env.example")
        sys.exit(1)
    if not settings.ENCRYPTION_KEY:
        logger.error("ENCRYPTION_KEY is not set. Create a .env file from .env.example")
        sys.exit(1)

    logger.info("Starting Voice Quiz Bot (API at %s)...", settings.API_BASE_URL)

    # Initialize database
    logger.info("Initializing database at %s", settings.DATABASE_PATH)
    db = await database.init_database(settings.DATABASE_PATH)
    database.db = db  # Set global instance

    # Initialize bot and dispatcher
    bot = Bot(token=settings.BOT_TOKEN)
    dp = Dispatcher(storage=MemoryStorage())

    # Session restore runs before every handler
    session_middleware = SessionMiddleware(SessionStore())
    dp.message.outer_middleware(session_middleware)
    dp.callback_query.outer_middleware(session_middleware)

    # Register routers (start first: its commands work in every state)
    dp.include_router(start.router)
    dp.include_router(auth.router)
    dp.include_router(dashboard.router)
    dp.include_router(upload.router)
    dp.include_router(transcribe.router)
    dp.include_router(generate.router)
    dp.include_router(quiz.router)

    logger.info("Bot handlers registered successfully")

    await bot.set_my_commands([
        BotCommand(command="start", description="Login or open the dashboard"),
        BotCommand(command="dashboard", description="Quiz history and statistics"),
        BotCommand(command="newquiz", description="Create a quiz from an audio file"),
        BotCommand(command="logout", description="Log out"),
        BotCommand(command="help", description="Help"),
    ])

    # Start polling
    try:
        logger.info("Starting bot polling...")
        await dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types()
        )
    except Exception as e:
        logger.error("Error during polling: %s", e)
        raise
    finally:
        # Cleanup
        await bot.session.close()
        if db:
            await db.close()
        logger.info("Bot stopped")


def run():
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")


if __name__ == "__main__":
    run()
