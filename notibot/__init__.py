"""
Package: notibot

Discord bot that delivers scheduled, optionally repeating notifications with
reminders ahead of each trigger.
"""
