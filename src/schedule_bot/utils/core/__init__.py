"""Core utilities shared across Schedule Bot."""
