"""nuxfly - Deploy Nuxt applications to Fly.io with SQLite, Litestream and Tigris buckets."""

__version__ = "0.1.0"
