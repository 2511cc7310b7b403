"""Global constants for the bot runtime."""

import os
from pathlib import Path

# Project root (the directory holding app.py)
BOT_ROOT = Path(__file__).resolve().parent.parent

CONFIG_FILE = Path(os.getenv("BOT_CONFIG_FILE", str(BOT_ROOT / "config.json")))

DATA_DIR = Path(os.getenv("BOT_DATA_DIR", str(BOT_ROOT / "data")))
PLUGIN_DB_DIR = DATA_DIR / "plugins"                  # <data>/plugins/<id>.sqlite

# Prefix a message must start with to be parsed as a command
COMMAND_PREFIX = os.getenv("BOT_COMMAND_PREFIX", "!")

# Seconds a suspended interaction waits for the next message
CONTINUATION_TIMEOUT = float(os.getenv("BOT_CONTINUATION_TIMEOUT", "300"))

# Set by GitHub Codespaces, where a visible browser cannot be opened
IN_GITHUB_CODESPACE = os.getenv("CODESPACES", "").lower() == "true"

# Plugin modules shipped with the bot
BUNDLED_PLUGIN_MODULES = (
    "plugins.bundled.reactor.plugin",
    "plugins.bundled.viewonce.plugin",
)
