"""
Persistence adapters.

`json_storage` reads/writes the user collection file; `user_repository` owns
the in-memory collection and writes it through the store on every mutation.
Routers should depend on the repository rather than touching the JSON file.
"""
