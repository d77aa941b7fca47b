"""LinkedIn content indexer.

Periodically searches for LinkedIn articles and posts on configured
topic/region combinations, stores them in SQLite and serves them over a
read-only HTTP API.
"""

__version__ = "0.1.0"
