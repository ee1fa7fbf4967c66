# coincatcher/config.py
import os
import logging
from datetime import timedelta
from pathlib import Path
from dotenv import load_dotenv
from typing import List

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent


def _int_list(raw: str) -> List[int]:
    return [int(item) for item in raw.split(",") if item.strip().isdigit()]


class Config:
    """Configuration settings for the bot"""

    # Bot settings
    TELEGRAM_TOKEN: str = os.getenv("TELEGRAM_TOKEN", "")

    # Database settings (postgresql://... or memory://)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    STORE_MAX_RETRIES: int = int(os.getenv("STORE_MAX_RETRIES", "5"))

    # Admin settings
    ADMIN_IDS: List[int] = _int_list(os.getenv("ADMIN_IDS", ""))

    # Reward settings
    HOURLY_CLAIM_COOLDOWN = timedelta(hours=int(os.getenv("HOURLY_CLAIM_COOLDOWN_HOURS", "3")))
    HOURLY_CLAIM_AMOUNT: int = int(os.getenv("HOURLY_CLAIM_AMOUNT", "100"))
    FAUCET_COOLDOWN = timedelta(minutes=int(os.getenv("FAUCET_COOLDOWN_MINUTES", "5")))
    FAUCET_CLAIM_AMOUNT: int = int(os.getenv("FAUCET_CLAIM_AMOUNT", "20"))
    GAME_COOLDOWN = timedelta(seconds=int(os.getenv("GAME_COOLDOWN_SECONDS", "60")))
    GAME_POINTS_PER_COIN: int = 10
    GAME_POINTS_PER_PIP: int = int(os.getenv("GAME_POINTS_PER_PIP", "7"))
    DAILY_STREAK_SCHEDULE: List[int] = _int_list(
        os.getenv("DAILY_STREAK_SCHEDULE", "15,30,45,60,75,90,120")
    )

    # Account settings
    SIGNUP_BONUS: int = int(os.getenv("SIGNUP_BONUS", "200"))
    REFERRAL_BONUS: int = int(os.getenv("REFERRAL_BONUS", "300"))
    MIN_WITHDRAWAL_PKR: int = int(os.getenv("MIN_WITHDRAWAL_PKR", "100"))

    # Pricing estimator (OpenAI compatible chat completions)
    PRICING_API_KEY: str = os.getenv("PRICING_API_KEY", "")
    PRICING_API_BASE_URL: str = os.getenv("PRICING_API_BASE_URL", "https://api.openai.com/v1")
    PRICING_MODEL: str = os.getenv("PRICING_MODEL", "gpt-4o-mini")
    PRICING_TIMEOUT: int = int(os.getenv("PRICING_TIMEOUT", "30"))

    # Other settings
    TIMEZONE: str = os.getenv("TZ", "Asia/Karachi")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paths
    LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))

    @classmethod
    def validate(cls):
        """Check the settings the bot cannot start without"""
        if not cls.TELEGRAM_TOKEN:
            raise ValueError("No TELEGRAM_TOKEN set in environment")
        if not cls.DATABASE_URL:
            raise ValueError("No DATABASE_URL set in environment")
        if len(cls.DAILY_STREAK_SCHEDULE) != 7:
            raise ValueError("DAILY_STREAK_SCHEDULE must list exactly 7 amounts")


def setup_logging():
    """Configure logging settings"""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    Config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = Config.LOG_DIR / "bot.log"

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
    # httpx logs every Telegram poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
