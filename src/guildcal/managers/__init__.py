"""Cache-backed managers for guild resources."""
