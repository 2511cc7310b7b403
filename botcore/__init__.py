"""Extension core of the chat bot: config store, plugins and command routing."""

__version__ = "0.1.0"
