"""Core building blocks: settings, exceptions, database foundation."""
