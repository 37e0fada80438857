"""
Module: notibot/scheduler/table.py

Defines ScheduleTable: the process-local map from notification ID to its
current generation and armed sends.
"""
import itertools


class ScheduleEntry:
    """Armed sends belonging to one generation of a notification."""
    __slots__ = ('generation', 'sends')

    def __init__(self, generation):
        self.generation = generation
        self.sends = []

    def cancel(self):
        for send in self.sends:
            send.cancel()
        self.sends.clear()


class ScheduleTable:
    """
    Tracks the live generation of every notification and its armed sends.

    Generations come from one monotonic counter shared by all IDs, so a value
    is never handed out twice, even after clear(). A fired send is only valid
    while is_current() still holds for the generation it captured.
    """
    def __init__(self):
        self._entries = {}
        self._generations = {}
        self._counter = itertools.count(1)

    def bump(self, notif_id):
        """
        Invalidate everything armed for notif_id and return its new generation.

        Cancels pending timers and drops the entry; sends already running keep
        going until their next generation check.
        """
        entry = self._entries.pop(notif_id, None)
        if entry is not None:
            entry.cancel()
        generation = next(self._counter)
        self._generations[notif_id] = generation
        return generation

    def discard(self, notif_id):
        """
        Cancel everything armed for notif_id and forget its generation.

        Captured generations stay invalid because the counter never repeats.
        """
        entry = self._entries.pop(notif_id, None)
        if entry is not None:
            entry.cancel()
        self._generations.pop(notif_id, None)

    def attach(self, notif_id, generation, send):
        """Record an armed send under notif_id for the given generation."""
        entry = self._entries.get(notif_id)
        if entry is None or entry.generation != generation:
            entry = ScheduleEntry(generation)
            self._entries[notif_id] = entry
        entry.sends.append(send)

    def generation(self, notif_id):
        return self._generations.get(notif_id)

    def is_current(self, notif_id, generation):
        return self._generations.get(notif_id) == generation

    def sends(self, notif_id):
        entry = self._entries.get(notif_id)
        return list(entry.sends) if entry else []

    def clear(self):
        """Cancel every armed send and forget every generation."""
        for entry in self._entries.values():
            entry.cancel()
        self._entries.clear()
        self._generations.clear()

    def __contains__(self, notif_id):
        return notif_id in self._entries

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
