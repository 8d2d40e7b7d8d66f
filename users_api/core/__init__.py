"""
Core utilities shared across the users API.

This package hosts configuration helpers (env vars, storage path, load policy)
and the logging setup. Repositories and routers depend on these primitives
instead of reading the environment themselves.
"""
