"""Infrastructure adapters: database, Redis and the remote commerce API."""
