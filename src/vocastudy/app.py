"""Main application entry point."""
import asyncio
import logging
from typing import Optional

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from vocastudy.config import settings
from vocastudy.models.base import init_db
from vocastudy.bot import (
    handle_callback,
    handle_learn,
    handle_message,
    handle_start,
    handle_stop,
    handle_test,
)


class VocaStudyBot:
    """Main application class."""

    def __init__(self, token: Optional[str] = None):
        """Initialize the application."""
        self.token = token if token is not None else settings.bot.token
        self.application: Optional[Application] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def build_application(self) -> Application:
        """Create the Telegram application and register handlers."""
        if not self.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        application = Application.builder().token(self.token).build()
        application.add_handler(CommandHandler("start", handle_start))
        application.add_handler(CommandHandler("help", handle_start))
        application.add_handler(CommandHandler("learn", handle_learn))
        application.add_handler(CommandHandler("test", handle_test))
        application.add_handler(CommandHandler("stop", handle_stop))
        application.add_handler(CallbackQueryHandler(handle_callback))
        application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
        return application

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            # Initialize database
            init_db()
            self.logger.info("Database initialized")

            self.application = self.build_application()
            self.logger.info("Application created")

            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if self.application is None:
            self.running = False
            return

        try:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()
            self.logger.info("Application stopped")
        except Exception as e:
            self.logger.error("Error while stopping application: %s", str(e))
            raise
        finally:
            self.application = None
            self.running = False

    def run(self) -> None:
        """Run the application until interrupted."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        try:
            loop.run_until_complete(self.start())
            loop.run_forever()
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            loop.run_until_complete(self.stop())
            loop.close()


def main() -> None:
    """Main entry point."""
    bot = VocaStudyBot()
    bot.run()


if __name__ == "__main__":
    main()
