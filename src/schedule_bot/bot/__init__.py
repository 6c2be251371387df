"""Discord-facing components of Schedule Bot."""
