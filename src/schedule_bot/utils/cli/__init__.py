"""Command-line utilities for Schedule Bot."""
