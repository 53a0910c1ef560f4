"""SQLite-backed persistent store."""
