"""
Module: notibot/commands/delete.py

Defines the `/noti del` slash command to remove scheduled notifications.
Provides an ephemeral confirmation prompt to the command invoker, preventing accidental or unauthorized deletions.
"""
import nextcord
from nextcord import ui, ButtonStyle

from notibot.bot_context import store, scheduler, noti_group
from notibot.scheduler import PersistenceFailure
from notibot.utils import log_message


class DeleteConfirmView(ui.View):
    """
    View for delete confirmation with Confirm and Cancel buttons.

    Ensures only the invoking user can confirm or cancel the deletion.

    Attributes:
        user_id (int): ID of the user permitted to interact.
        notif_id (int): Notification ID to delete.
        confirmed (bool): Whether the user has confirmed the action.
    """
    def __init__(self, user_id: int, notif_id: int):
        super().__init__(timeout=30)
        self.user_id = user_id
        self.notif_id = notif_id
        self.confirmed = False

    @ui.button(label="Confirm", style=ButtonStyle.danger)
    async def confirm(self, _, interaction: nextcord.Interaction):
        if interaction.user.id != self.user_id:
            return await interaction.response.send_message("Not authorized.", ephemeral=True)
        self.confirmed = True
        self.stop()
        await interaction.response.edit_message(
            content=f"Confirmed deletion of notification {self.notif_id}.", view=None
        )

    @ui.button(label="Cancel", style=ButtonStyle.secondary)
    async def cancel(self, _, interaction: nextcord.Interaction):
        if interaction.user.id != self.user_id:
            return await interaction.response.send_message("Not authorized.", ephemeral=True)
        self.stop()
        await interaction.response.edit_message(content="Deletion cancelled.", view=None)


@noti_group.subcommand(name="del", description="Delete a scheduled notification")
async def delete_notification(
    interaction: nextcord.Interaction,
    notification_id: int = nextcord.SlashOption(
        description="The ID of the notification to delete", required=True, min_value=1
    )
):
    """
    Handle the `/noti del` slash command.

    Validates ownership or permissions, then prompts for confirmation. The
    schedule is cancelled before the record is removed.
    """
    try:
        record = store.get_by_id(notification_id)
    except PersistenceFailure as e:
        log_message(f"Failed to load notification {notification_id}: {e.message}", "error")
        return await interaction.response.send_message("❌ Could not load the notification.", ephemeral=True)
    if record is None:
        return await interaction.response.send_message("❌ Notification not found.", ephemeral=True)

    if record.guild_id:
        if not interaction.guild or record.guild_id != interaction.guild.id:
            return await interaction.response.send_message("❌ Not in this guild.", ephemeral=True)
        can_manage = interaction.user.guild_permissions.manage_messages
    else:
        can_manage = False
    if record.created_by != interaction.user.id and not can_manage:
        return await interaction.response.send_message("❌ Not allowed to delete.", ephemeral=True)

    view = DeleteConfirmView(interaction.user.id, notification_id)
    await interaction.response.send_message(
        f"Are you sure you want to delete notification {notification_id}?",
        view=view,
        ephemeral=True
    )
    await view.wait()
    if not view.confirmed:
        return

    scheduler.unschedule(notification_id)
    try:
        store.delete(notification_id)
    except PersistenceFailure as e:
        log_message(f"Failed to delete notification {notification_id}: {e.message}", "error")
        return await interaction.edit_original_message(content="❌ Could not delete the notification.", view=None)
    log_message(f"User {interaction.user.name} deleted notification {notification_id}", "info")
    await interaction.edit_original_message(content=f"✅ Deleted notification {notification_id}.", view=None)
