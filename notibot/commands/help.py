"""
Module: notibot/commands/help.py

Provides the `/noti help` slash command for displaying usage information
for the notification commands (add, list, del).
"""
import nextcord

from notibot.bot_context import noti_group
from notibot.utils import log_message

HELP_DATA = {
    None: {
        "title": "📚 Notification Help",
        "description": "Here are the available notification commands:",
        "fields": [
            ("/noti add <YYYY-mm-dd HH:MM> <message> [channel] [interval] [pattern] [name]",
             "Add a one‑off or repeating notification, optionally with reminders"),
            ("/noti list", "List all notifications for this server"),
            ("/noti del <ID>", "Delete a notification"),
            ("/noti help [command]", "Get help with notification commands"),
        ]
    },
    "add": {
        "title": "➕ Add Command Help",
        "description": "Add a one‑off or repeating notification",
        "example": "/noti add 2025-06-01 09:00 Standup meeting #general 1d 15,5,time",
        "details": (
            "Parameters:\n"
            "- time: Trigger in UTC (YYYY-mm-dd HH:MM).\n"
            "- message: The content to send.\n"
            "- channel (optional): Target channel. Without it you get a DM.\n"
            "- interval (optional): Repeat interval (e.g., '30m', '1h', '2d', '1w').\n"
            "- pattern (optional): Comma-separated minutes before the trigger to send reminders; "
            "the message is always sent at the trigger itself as well ('15,5' becomes '15,5,time').\n\n"
            "Repeating notifications whose first time already passed start at the next occurrence."
        )
    },
    "list": {
        "title": "📋 List Command Help",
        "description": "List all notifications for this server",
        "example": "/noti list",
        "details": "Displays each notification's ID, channel, next run, reminders and message preview."
    },
    "del": {
        "title": "❌ Delete Command Help",
        "description": "Delete a notification",
        "example": "/noti del 5",
        "details": (
            "Cancels and deletes the notification with the given ID.\n"
            "You can only delete your own notifications unless you have manage messages permission."
        )
    }
}


@noti_group.subcommand(name="help", description="Get help with notification commands")
async def notification_help(
    interaction: nextcord.Interaction,
    command: str = nextcord.SlashOption(
        description="Command to explain", required=False, choices=["add", "list", "del"]
    )
):
    """
    Display help for all commands, or details and an example for one of them.
    """
    data = HELP_DATA[command] if command else HELP_DATA[None]
    embed = nextcord.Embed(
        title=data["title"],
        description=data["description"],
        color=nextcord.Color.green()
    )

    if command:
        embed.add_field(name="📝 Example", value=data["example"], inline=False)
        embed.add_field(name="ℹ️ Details", value=data["details"], inline=False)
    else:
        for name, value in data["fields"]:
            embed.add_field(name=name, value=value, inline=False)

    log_message(
        f"User {interaction.user.name} ({interaction.user.id}) accessed help: {command or 'general'}",
        "info"
    )
    await interaction.response.send_message(embed=embed, ephemeral=True)
