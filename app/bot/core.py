# app/bot/core.py
from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from app.core.config import settings

default_properties = DefaultBotProperties(parse_mode=ParseMode.HTML)

# Operator alerts are optional: without a token there is no bot
bot: Bot | None = (
    Bot(token=settings.TELEGRAM_BOT_TOKEN, default=default_properties)
    if settings.TELEGRAM_BOT_TOKEN
    else None
)
