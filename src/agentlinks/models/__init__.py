"""Data models: read-time canonical conversations and persisted link records."""
