"""Client, command-line tool and byte counters for a TCP fault-injection proxy's HTTP API."""

__version__ = "2.5.0"
__all__ = ["cli", "client", "errors", "metrics", "models"]