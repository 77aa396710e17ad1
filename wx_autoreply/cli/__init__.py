"""CLI module for wx-autoreply."""
