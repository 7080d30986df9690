"""Log service models, retry helpers, logger set-up and a batching log producer."""

__version__ = "0.1.0"