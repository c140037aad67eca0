"""Collaborators outside the UI: settings persistence and avatar downloads."""
