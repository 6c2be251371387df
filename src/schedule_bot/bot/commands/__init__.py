"""Slash commands and event listeners of Schedule Bot."""
