"""Durable memory synchronization between an agent's transcripts and Honcho."""
