"""
Telegram front end - send a library link, get the book back as a PDF
"""
from __future__ import annotations

import asyncio
import logging
import re
import sys
from typing import Optional

from telegram import Message, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from .config import BotSettings
from .downloader import BookDownloader, DownloadResult
from .errors import ResolveError, SetupError
from .progress import ThrottledProgress

log = logging.getLogger(__name__)

LINK_PATTERN = re.compile(r"\S*elibrary\.asu\.ru\S*", re.IGNORECASE)
PROGRESS_EMOJI = ["😮", "😲", "😳", "😱", "🤯"]
PAGES_PER_EMOJI = 25

START_TEXT = (
    "Привет\\! Этот бот помогает скачивать книги из библиотеки АГУ\\.\n\n"
    "Отправь мне ссылку на книгу, и я пришлю её в формате PDF\\.\n"
    "Отправляй *одну ссылку за раз\\!*\n\n"
    "__Примеры ссылок:__\n\n"
    "http://elibrary\\.asu\\.ru/xmlui/handle/asu/9770\n\n"
    "http://elibrary\\.asu\\.ru/xmlui/bitstream/handle/asu/9770/read\\.7book?sequence\\=1&isAllowed\\=y\n"
)
STATUS_TEXT = "Скачиваю книгу..."
RESOLVE_FAILED_TEXT = "Ошибка: {error}"
DOWNLOAD_FAILED_TEXT = "Не удалось скачать книгу 🤔"
SEND_FAILED_TEXT = "Не удалось отправить PDF 😭 Возможно, файл слишком большой..."
PARTIAL_TEXT = "Книга скачана не полностью: начиная со страницы {page} получить страницы не удалось."


def extract_link(text: str) -> Optional[str]:
    """Return the first library link in a message, if any"""
    match = LINK_PATTERN.search(text or "")
    return match.group(0) if match else None


def progress_text(pages: int) -> str:
    emoji = PROGRESS_EMOJI[min(pages // PAGES_PER_EMOJI, len(PROGRESS_EMOJI) - 1)]
    return f"{STATUS_TEXT} скачано страниц: {pages}. {emoji}"


class ElibraryBot:
    """Telegram bot wrapping BookDownloader"""

    def __init__(
        self,
        settings: Optional[BotSettings] = None,
        downloader: Optional[BookDownloader] = None,
    ):
        self.settings = settings or BotSettings()
        self.downloader = downloader or BookDownloader(retry_delay=self.settings.retry_delay)

    def build_application(self) -> Application:
        app = (
            Application.builder()
            .token(self.settings.telegram_token)
            .read_timeout(30)
            .write_timeout(30)
            .build()
        )
        app.add_handler(CommandHandler("start", self.start))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_message))
        return app

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await update.message.reply_text(START_TEXT, parse_mode=ParseMode.MARKDOWN_V2)

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Start a download for messages that contain a library link"""
        message = update.message
        link = extract_link(message.text if message else "")
        if not link:
            return

        status = await message.reply_text(STATUS_TEXT)
        # Downloads take minutes; run them outside the update handler
        context.application.create_task(self.process_link(message, status, link))

    async def process_link(self, message: Message, status: Message, link: str) -> Optional[DownloadResult]:
        loop = asyncio.get_running_loop()

        def schedule_update(page: int) -> None:
            asyncio.run_coroutine_threadsafe(self.update_status(status, page), loop)

        progress = ThrottledProgress(schedule_update, interval=self.settings.progress_interval)

        try:
            identity = await asyncio.to_thread(self.downloader.resolver.resolve, link)
            result = await asyncio.to_thread(self.downloader.download, identity, progress)
        except (ResolveError, SetupError) as exc:
            log.error("Cannot download %s: %s", link, exc)
            await self._reply(message, RESOLVE_FAILED_TEXT.format(error=exc))
            return None
        except Exception:
            log.exception("Download error for %s", link)
            await self._reply(message, DOWNLOAD_FAILED_TEXT)
            return None

        progress.flush()

        if not result.complete:
            await self._reply(message, PARTIAL_TEXT.format(page=result.session.page_index))

        try:
            await message.reply_document(document=result.pdf, filename=result.filename)
        except TelegramError as exc:
            log.error("Error sending document %s: %s", result.filename, exc)
            await self._reply(message, SEND_FAILED_TEXT)
        return result

    async def update_status(self, status: Message, pages: int) -> None:
        try:
            await status.edit_text(progress_text(pages))
        except TelegramError as exc:
            log.warning("Progress update failed: %s", exc)

    @staticmethod
    async def _reply(message: Message, text: str) -> None:
        try:
            await message.reply_text(text)
        except TelegramError as exc:
            log.error("Reply failed: %s", exc)


def main() -> None:
    """Bot entry point"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    settings = BotSettings()
    if not settings.telegram_token:
        log.critical("TELEGRAM_TOKEN is not set")
        sys.exit(1)

    bot = ElibraryBot(settings)
    app = bot.build_application()
    log.info("Bot started")
    app.run_polling()


if __name__ == "__main__":
    main()
