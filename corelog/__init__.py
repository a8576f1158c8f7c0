"""core_log data access."""
