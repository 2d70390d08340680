"""Core primitives shared by the broker and its subscribers.

Modules
-------
errors      OpHooksError hierarchy with categories and chained causes
logging     structlog configuration and ``get_logger``
settings    pydantic-settings classes read from the environment
ticker      PeriodicTicker -- daemon-thread interval runner
timestamps  utcnow -- timezone-aware UTC now
"""
