"""EHR Request Broker.

Admits, tracks, caches and finalizes asynchronous data-retrieval requests
made on behalf of citizens against a remote EHR middleware.
"""

__version__ = "1.0.0"
