"""
Module: notibot/bot_context.py

Sets up the Discord bot, database, notification store and scheduler, and defines
the main slash command group `/noti`.
"""
import nextcord
from nextcord.ext import commands

from notibot.channel import DiscordChannel
from notibot.config import DATABASE_PATH, EARLY_BUFFER, GUILD_IDS, GUILD_MODE
from notibot.database import Database
from notibot.render import MessageRenderer
from notibot.scheduler import NotificationScheduler
from notibot.store import NotificationStore

# Initialize database connection, store and scheduler
db = Database(DATABASE_PATH)
store = NotificationStore(db)
intents = nextcord.Intents.default()
bot = commands.Bot(intents=intents)
scheduler = NotificationScheduler(
    store,
    MessageRenderer(),
    DiscordChannel(bot),
    early_buffer=EARLY_BUFFER,
)


@bot.slash_command(
    name="noti",
    description="Notification Scheduler Commands",
    guild_ids=GUILD_IDS if GUILD_MODE else None
)
async def noti_group(interaction: nextcord.Interaction):
    """
    Main command group for notification scheduler.
    Subcommands: add, list, del, help.
    This command itself is not directly invoked.
    """
    pass
