import nextcord

from notibot.bot_context import store, noti_group
from notibot.scheduler import PersistenceFailure
from notibot.utils import format_timestamp, log_message


def describe_frequency(seconds):
    """Largest whole unit for a repeat frequency, e.g. 86400 -> '1d'."""
    for unit, size in (('w', 604800), ('d', 86400), ('h', 3600), ('m', 60)):
        if seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


@noti_group.subcommand(name="list", description="List all scheduled notifications for this server")
async def list_notifications(interaction: nextcord.Interaction):
    """
    List the current server's notifications with their next trigger and reminder pattern.
    """
    if not interaction.guild:
        return await interaction.response.send_message(
            "ℹ️ Use this command inside a server.", ephemeral=True
        )
    try:
        records = store.list_for_guild(interaction.guild.id)
    except PersistenceFailure as e:
        log_message(f"Error in /noti list command: {e.message}", "error")
        return await interaction.response.send_message(
            "❌ An error occurred while fetching the notification list.", ephemeral=True
        )

    if not records:
        return await interaction.response.send_message(
            "ℹ️ No scheduled notifications for this server.", ephemeral=True
        )

    embed = nextcord.Embed(
        title="📅 Scheduled Notifications",
        color=nextcord.Color.blue()
    )
    # Discord caps embeds at 25 fields
    for record in records[:25]:
        preview = record.message or record.title or ''
        preview = preview[:100] + '...' if len(preview) > 100 else preview
        field = (
            f"**Channel:** <#{record.channel_id}>\n"
            f"**Scheduled by:** <@{record.created_by}>\n"
            f"**Next run:** {format_timestamp(record.trigger) if record.active else '—'}\n"
            f"**Reminders:** {record.pattern or 'time'}\n"
        )
        if record.repeat and record.frequency:
            field += f"**Interval:** every {describe_frequency(record.frequency)}\n"
        if record.last_trigger:
            field += f"**Last sent:** {format_timestamp(record.last_trigger)}\n"
        field += f"**Message:** {preview}"
        icon = "🔁" if record.repeat else "📌"
        status = "" if record.active else " (inactive)"
        embed.add_field(name=f"{icon} ID {record.id}{status}", value=field, inline=False)

    await interaction.response.send_message(embed=embed, ephemeral=True)
