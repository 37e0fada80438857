"""
Module: notibot/channel.py

DiscordChannel: resolves notification targets through nextcord and sends
rendered payloads, translating nextcord errors into scheduler errors.
"""
import nextcord

from notibot.scheduler.errors import TargetNotFound, TransientSendError


class DiscordChannel:
    """
    Delivery channel backed by a nextcord bot.

    Attributes:
        bot: nextcord.Client / commands.Bot instance.
    """
    def __init__(self, bot):
        self.bot = bot

    async def resolve_target(self, ref, fresh=False):
        """
        Return the messageable for a TargetRef.

        With fresh=False the client cache is consulted first; fresh=True always
        goes to the API so the handle is valid at send time.

        Raises:
            TargetNotFound: when the guild, channel or user is gone or inaccessible.
        """
        try:
            if ref.kind == 'channel':
                return await self._resolve_channel(ref, fresh)
            if ref.kind == 'user':
                user = None if fresh else self.bot.get_user(ref.target_id)
                return user or await self.bot.fetch_user(ref.target_id)
        except (nextcord.NotFound, nextcord.Forbidden) as e:
            raise TargetNotFound(f"{ref.kind} {ref.target_id} not reachable: {e}") from e
        except nextcord.HTTPException as e:
            raise TransientSendError(f"Resolving {ref.kind} {ref.target_id} failed: {e}") from e
        raise TargetNotFound(f"Invalid target type: {ref.kind}")

    async def _resolve_channel(self, ref, fresh):
        if not fresh:
            guild = self.bot.get_guild(ref.guild_id)
            if guild is None:
                raise TargetNotFound(f"Guild {ref.guild_id} not found")
            channel = guild.get_channel(ref.target_id)
            if channel is None:
                raise TargetNotFound(f"Channel {ref.target_id} not found")
            return channel
        return await self.bot.fetch_channel(ref.target_id)

    async def send(self, target, payload):
        """
        Send a MessagePayload.

        Raises:
            TargetNotFound: the target vanished or the bot lost access.
            TransientSendError: any other HTTP failure.
        """
        try:
            await target.send(content=payload.content, embed=payload.embed)
        except (nextcord.NotFound, nextcord.Forbidden) as e:
            raise TargetNotFound(f"Target {getattr(target, 'id', target)} rejected send: {e}") from e
        except nextcord.HTTPException as e:
            raise TransientSendError(f"Send to {getattr(target, 'id', target)} failed: {e}") from e
