"""Clean and copy tasks."""
