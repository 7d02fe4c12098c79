"""Per-sample step definitions and executors."""
