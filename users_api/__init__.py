"""Users API: a JSON-file backed user collection served over FastAPI."""
