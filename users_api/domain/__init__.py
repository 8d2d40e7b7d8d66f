"""Domain rules for user records (pure functions, no storage or HTTP)."""
