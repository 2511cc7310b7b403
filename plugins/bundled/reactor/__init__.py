"""Reactor plugin: reacts to matching messages with an emoji."""
