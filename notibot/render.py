"""
Module: notibot/render.py

Renders a notification record into a Discord message: substitutes configured
@tag placeholders with mentions and builds the optional embed.
"""
import json
import re
from typing import NamedTuple, Optional

import nextcord

from notibot.utils import log_message

DEFAULT_COLOR = '#0099ff'


class MessagePayload(NamedTuple):
    content: Optional[str]
    embed: Optional[nextcord.Embed]


def parse_mentions(mention_json):
    """
    Parse the stored mention mapping: {component: {tag: "type:id"}}.

    Returns an empty dict for missing or invalid JSON.
    """
    if not mention_json:
        return {}
    try:
        mentions = json.loads(mention_json)
    except (TypeError, ValueError) as e:
        log_message(f"Error parsing mentions: {e}", "warning")
        return {}
    return mentions if isinstance(mentions, dict) else {}


def mention_for(value):
    """Discord mention string for a "type:id" mention value."""
    kind, _, target = value.partition(':')
    if kind == 'everyone':
        return '@everyone'
    if kind == 'here':
        return '@here'
    if kind == 'user':
        return f'<@{target}>'
    if kind == 'role':
        return f'<@&{target}>'
    return ''


def convert_tags(text, mentions, component):
    """
    Replace every configured @tag of a component with its Discord mention.

    Args:
        text (str): Text containing @tag placeholders.
        mentions (dict): Parsed mention mapping.
        component (str): 'message', 'description' or 'field_<index>'.
    """
    if not text or not mentions.get(component):
        return text
    for tag, value in mentions[component].items():
        replacement = mention_for(str(value))
        text = re.sub(rf'@{re.escape(tag)}\b', lambda _: replacement, text)
    return text


def parse_color(color):
    try:
        return nextcord.Colour(int((color or DEFAULT_COLOR).lstrip('#'), 16))
    except ValueError:
        log_message(f"Invalid embed color {color!r}, using default", "warning")
        return nextcord.Colour(int(DEFAULT_COLOR.lstrip('#'), 16))


class MessageRenderer:
    """
    Builds the MessagePayload for a record from its current content.
    """
    def render(self, record):
        mentions = parse_mentions(record.mention)
        content = convert_tags(record.message, mentions, 'message') or None
        embed = self.build_embed(record, mentions) if record.embed else None
        return MessagePayload(content, embed)

    def build_embed(self, record, mentions):
        embed = nextcord.Embed(
            title=record.title or None,
            description=convert_tags(record.description, mentions, 'description') or None,
            colour=parse_color(record.color),
        )
        if record.image_url and record.image_url.strip():
            embed.set_image(url=record.image_url)
        if record.thumbnail_url and record.thumbnail_url.strip():
            embed.set_thumbnail(url=record.thumbnail_url)
        if record.footer and record.footer.strip():
            embed.set_footer(text=record.footer)
        if record.author and record.author.strip():
            embed.set_author(name=record.author)

        for index, field in enumerate(self._fields(record)):
            if field.get('name') and field.get('value'):
                embed.add_field(
                    name=field['name'],
                    value=convert_tags(field['value'], mentions, f'field_{index}'),
                    inline=bool(field.get('inline', False)),
                )
        return embed

    def _fields(self, record):
        if not record.fields:
            return []
        try:
            fields = json.loads(record.fields)
        except (TypeError, ValueError) as e:
            log_message(f"Error parsing embed fields of notification {record.id}: {e}", "warning")
            return []
        return [f for f in fields if isinstance(f, dict)] if isinstance(fields, list) else []
