"""
Module: notibot/commands/add.py

Defines the `/noti add` slash command, allowing users to add one‑off or repeating
notifications with optional reminders ahead of the trigger time.
"""
from datetime import datetime, UTC

import nextcord

from notibot.bot_context import store, scheduler, noti_group
from notibot.scheduler import PersistenceFailure, compile_send_plan, fast_forward, normalize_pattern
from notibot.utils import format_timestamp, interval_to_seconds, log_message


def parse_trigger(value):
    """Parse 'YYYY-mm-dd HH:MM' (UTC) into epoch seconds, or None if invalid."""
    try:
        naive = datetime.strptime(value.strip(), "%Y-%m-%d %H:%M")
    except ValueError:
        return None
    return int(naive.replace(tzinfo=UTC).timestamp())


@noti_group.subcommand(
    name="add",
    description="Add a one‑off or repeating notification"
)
async def add_notification(
    interaction: nextcord.Interaction,
    time: str = nextcord.SlashOption(
        description="Trigger time (YYYY-mm-dd HH:MM UTC)", required=True
    ),
    message: str = nextcord.SlashOption(
        description="The message to send", required=True
    ),
    channel: nextcord.TextChannel = nextcord.SlashOption(
        description="Channel for the notification (omit for a private DM)", required=False
    ),
    interval: str = nextcord.SlashOption(
        description="Optional repeat interval (e.g., '30m','1h','2d','1w')", required=False
    ),
    pattern: str = nextcord.SlashOption(
        description="Reminders in minutes before, e.g. '15,5,time' (default: 'time')", required=False
    ),
    name: str = nextcord.SlashOption(
        description="Optional name", required=False
    ),
):
    """
    Handle `/noti add`. Stores the notification and hands it to the scheduler.

    Parameters:
    - interaction: Interaction context.
    - time, message: trigger and content.
    - channel: target channel; without it the notification is sent by DM.
    - interval: optional repeat frequency.
    - pattern: optional reminder pattern.
    """
    await interaction.response.send_message("⌛ Processing...", ephemeral=True)

    trigger = parse_trigger(time)
    if trigger is None:
        return await interaction.edit_original_message(content="❌ Invalid time format.")

    frequency = None
    if interval:
        frequency = interval_to_seconds(interval)
        if not frequency:
            return await interaction.edit_original_message(content="❌ Invalid interval.")

    reminder_pattern = normalize_pattern(pattern)
    if reminder_pattern is None:
        return await interaction.edit_original_message(content="❌ Invalid reminder pattern.")

    now = int(datetime.now(UTC).timestamp())
    if trigger <= now:
        if not frequency:
            return await interaction.edit_original_message(
                content="❌ Time must be in the future for non-repeating notifications."
            )
        trigger = fast_forward(trigger, frequency, now)

    guild_id = interaction.guild.id if interaction.guild and channel else None
    try:
        record = store.create(
            name=name or message[:50],
            guild_id=guild_id,
            channel_id=channel.id if channel else None,
            created_by=interaction.user.id,
            message=message,
            pattern=reminder_pattern,
            repeat=bool(frequency),
            frequency=frequency,
            active=True,
            trigger=trigger,
        )
    except PersistenceFailure as e:
        log_message(f"Failed to store notification: {e.message}", "error")
        return await interaction.edit_original_message(content="❌ Could not save the notification.")

    where = f"#{channel.name}" if channel else "your DMs"
    log_message(
        f"User {interaction.user.display_name} added notification {record.id} for {where}",
        "info"
    )

    scheduler.add_notification(record.id)

    sends = len(compile_send_plan(trigger, reminder_pattern))
    confirm_msg = f"✅ Scheduled (ID {record.id}) notification in {where} at {format_timestamp(trigger)}"
    if frequency:
        confirm_msg += f" every {interval}"
    if sends > 1:
        confirm_msg += f" with {sends - 1} reminder(s) ({reminder_pattern})"
    confirm_msg += f": {message}"
    await interaction.edit_original_message(content=confirm_msg)
