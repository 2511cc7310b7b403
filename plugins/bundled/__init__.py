"""Plugins shipped with the bot."""
