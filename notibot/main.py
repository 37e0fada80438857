"""
Module: notibot/main.py

Entry point for the Noti Discord Bot.
Registers commands and defines event handlers for bot lifecycle, guild
membership, disconnection and reconnection. The notification scheduler is
restored on ready/resume and stopped on disconnect.
"""
import traceback

import nextcord

from notibot.config import DISCORD_BOT_TOKEN, GUILD_IDS, GUILD_MODE, require_credentials
from notibot.utils import log_message
from notibot.bot_context import bot, db, scheduler, noti_group

# Import command modules to register slash commands
import notibot.commands.add
import notibot.commands.list
import notibot.commands.delete
import notibot.commands.help


@bot.event
async def on_ready():
    """
    Handler for the bot's ready event.

    Logs bot identity, restores scheduled notifications, and syncs slash commands.
    """
    log_message(f'Logged in as {bot.user.name} ({bot.user.id})', "info")
    await scheduler.reinitialize()

    if GUILD_MODE:
        for guild_id in GUILD_IDS:
            guild = bot.get_guild(guild_id)
            guild_name = guild.name if guild else str(guild_id)
            try:
                synced = await bot.sync_application_commands(guild_id=guild_id)
                count = len(synced) if synced is not None else None
                if count is not None:
                    log_message(f"Synced {count} commands to guild {guild_name} ({guild_id})", "info")
                else:
                    log_message(f"Synced commands to guild {guild_name} ({guild_id})", "info")
            except nextcord.errors.Forbidden:
                log_message(
                    f"Failed to sync commands for guild {guild_name} ({guild_id}): Missing Access", "warning"
                )
            except nextcord.HTTPException as e:
                log_message(
                    f"Error syncing commands for guild {guild_name} ({guild_id}): {e}", "error"
                )


@bot.event
async def on_application_command_error(interaction, error):
    """
    Handler for errors during slash command execution.

    Logs the error and notifies the user of an internal failure.
    """
    log_message(f"Slash command error: {error}", "error")
    try:
        await interaction.response.send_message("❌ An internal error occurred.", ephemeral=True)
    except nextcord.HTTPException as e:
        log_message(f"Could not report command error to user: {e}", "warning")


@bot.event
async def on_error(event_method, *args, **kwargs):
    """
    Catch-all handler for unhandled errors in any event.

    Logs the event method name and full traceback when an error occurs.
    """
    log_message(f"Unhandled error in event {event_method}: {traceback.format_exc()}", "error")


@bot.event
async def on_guild_join(guild):
    """
    Handler for when the bot joins a new guild.

    Logs the guild information and synchronizes slash commands to the guild.
    """
    log_message(f"Joined new guild: {guild.name} ({guild.id})", "info")
    try:
        synced = await bot.sync_application_commands(guild_id=guild.id)
        log_message(f"Synced {len(synced or [])} commands to new guild {guild.id}", "info")
    except nextcord.HTTPException as e:
        log_message(f"Failed to sync commands for guild {guild.id}: {e}", "error")


@bot.event
async def on_guild_remove(guild):
    """
    Handler for when the bot is removed from a guild.

    Logs the removal event.
    """
    log_message(f"Removed from guild: {guild.name} ({guild.id})", "warning")


@bot.event
async def on_disconnect():
    """
    Handler for bot disconnection.

    Stops the scheduler so no sends fire against a dead gateway; the schedule
    is rebuilt from the database on resume.
    """
    log_message("Bot disconnected from Discord, pausing notifications.", "warning")
    await scheduler.shutdown()


@bot.event
async def on_resumed():
    """
    Handler for bot reconnection after a disconnect.

    Verifies the database connection and reloads all scheduled notifications.
    """
    log_message("Bot resumed connection, reloading notifications.", "info")
    db.ensure_connection()
    await scheduler.reinitialize()


def main():
    """Start the bot."""
    require_credentials()
    log_message("Bot is starting up...")
    bot.add_application_command(noti_group)
    try:
        bot.run(DISCORD_BOT_TOKEN)
    finally:
        db.close()


if __name__ == "__main__":
    main()
