# === ./notibot/config.py === #
import os
from dotenv import load_dotenv
from notibot.utils import parse_interval, interval_to_timedelta, set_log_level

load_dotenv()

RAW_GUILD_IDS = os.getenv("GUILD_IDS", "")
GUILD_IDS = [int(gid.strip()) for gid in RAW_GUILD_IDS.split(",") if gid.strip().isdigit()]
GUILD_MODE = bool(GUILD_IDS)

DISCORD_BOT_TOKEN = os.getenv('DISCORD_BOT_TOKEN')
DISCORD_APPLICATION_ID = os.getenv('DISCORD_APPLICATION_ID')

DATABASE_PATH = os.getenv('DATABASE_PATH', 'noti.db')

# Lead time before each exact send, used to fetch and render ahead of the moment
_early = interval_to_timedelta(*parse_interval(os.getenv('EARLY_BUFFER', '3s')))
EARLY_BUFFER = _early.total_seconds() if _early is not None else 3.0

LOG_LEVEL = os.getenv('LOG_LEVEL', 'info')
set_log_level(LOG_LEVEL)


def require_credentials():
    """
    Ensure the Discord credentials are present before the bot connects.

    Raises:
        EnvironmentError: when DISCORD_BOT_TOKEN or DISCORD_APPLICATION_ID is missing.
    """
    if not DISCORD_BOT_TOKEN or not DISCORD_APPLICATION_ID:
        raise EnvironmentError("Missing DISCORD_BOT_TOKEN or DISCORD_APPLICATION_ID in .env file")
