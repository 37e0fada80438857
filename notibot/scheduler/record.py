"""
Module: notibot/scheduler/record.py

Provides the NotificationRecord class: the scheduler's view of a row in the
`notifications` table, with conversion from sqlite rows and validation of the
fields the scheduler depends on.
"""
import copy

from notibot.scheduler.errors import MalformedRecord

# Record attribute -> notifications column
COLUMNS = {
    'id': 'id',
    'name': 'name',
    'guild_id': 'guild_id',
    'channel_id': 'channel_id',
    'created_by': 'created_by',
    'message': 'message_content',
    'embed': 'embed_toggle',
    'title': 'title',
    'description': 'description',
    'color': 'color',
    'image_url': 'image_url',
    'thumbnail_url': 'thumbnail_url',
    'footer': 'footer',
    'author': 'author',
    'fields': 'fields',
    'mention': 'mention',
    'pattern': 'pattern',
    'repeat': 'repeat_status',
    'frequency': 'repeat_frequency',
    'active': 'is_active',
    'last_trigger': 'last_trigger',
    'trigger': 'next_trigger',
}

BOOLEAN_ATTRS = ('embed', 'repeat', 'active')
TIMESTAMP_ATTRS = ('trigger', 'last_trigger')


def _as_timestamp(value):
    if value is None or value == '':
        return None
    return int(float(value))


class NotificationRecord:
    """
    A scheduled notification.

    Attributes:
        id (int): Unique notification ID.
        name (str): Display name.
        guild_id (int or None): Discord server ID; with channel_id, a channel notification.
        channel_id (int or None): Discord channel ID.
        created_by (int or None): Owner; the DM recipient for private notifications.
        message (str or None): Plain message content, may contain @tag placeholders.
        embed (bool): Whether an embed is attached.
        title, description, color, image_url, thumbnail_url, footer, author (str or None): Embed parts.
        fields (str or None): JSON list of embed fields.
        mention (str or None): JSON mapping of component -> {tag: "type:id"}.
        pattern (str or None): Reminder pattern, e.g. "15,5,time".
        repeat (bool): Whether the notification repeats.
        frequency (int or None): Repeat period in seconds.
        active (bool): Whether a live schedule should exist.
        last_trigger (int or None): Epoch seconds of the last on-time send.
        trigger (int or None): Epoch seconds of the next canonical send.
    """
    __slots__ = tuple(COLUMNS)

    def __init__(self, id, **attrs):
        unknown = set(attrs) - set(COLUMNS)
        if unknown:
            raise TypeError(f"Unknown notification attributes: {sorted(unknown)}")
        self.id = id
        for name in COLUMNS:
            if name != 'id':
                setattr(self, name, attrs.get(name))
        for name in BOOLEAN_ATTRS:
            setattr(self, name, bool(getattr(self, name)))
        for name in TIMESTAMP_ATTRS:
            setattr(self, name, _as_timestamp(getattr(self, name)))
        if self.frequency is not None:
            self.frequency = int(self.frequency)

    @classmethod
    def from_row(cls, row):
        """
        Build a record from a sqlite3.Row (or any mapping keyed by column name).

        Columns missing from the row are left as None.
        """
        keys = set(row.keys())
        attrs = {
            attr: row[column]
            for attr, column in COLUMNS.items()
            if column in keys and attr != 'id'
        }
        return cls(row['id'], **attrs)

    def replace(self, **changes):
        """Return a copy of this record with the given attributes changed."""
        clone = copy.copy(self)
        for name, value in changes.items():
            if name not in COLUMNS:
                raise TypeError(f"Unknown notification attribute: {name}")
            setattr(clone, name, value)
        return clone

    def validate(self):
        """
        Check the fields the scheduler relies on.

        Raises:
            MalformedRecord: if the trigger is missing or zero, or a repeating
            record has no positive frequency.
        """
        if not self.trigger:
            raise MalformedRecord(f"Notification {self.id} has no trigger", self.id)
        if self.repeat and (not self.frequency or self.frequency <= 0):
            raise MalformedRecord(
                f"Repeating notification {self.id} has invalid frequency {self.frequency!r}",
                self.id,
            )

    @property
    def is_private(self):
        """True when the notification is delivered by DM instead of a guild channel."""
        return not (self.guild_id and self.channel_id)

    def __repr__(self):
        return (
            f"NotificationRecord(id={self.id!r}, trigger={self.trigger!r}, "
            f"repeat={self.repeat!r}, frequency={self.frequency!r}, "
            f"pattern={self.pattern!r}, active={self.active!r})"
        )
