"""Core utilities shared by the memory sync commands."""
