"""Incremental sync of conversation transcripts into Honcho's peer memory."""
