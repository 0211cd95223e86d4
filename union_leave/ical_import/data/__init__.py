"""PocketBase access for the calendar import."""
