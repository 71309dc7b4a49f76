"""Protocol codec, request headers, data model, routing and reply futures for message broker clients."""

__version__ = "0.1.0"