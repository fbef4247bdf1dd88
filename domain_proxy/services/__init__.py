"""
Services module for proxy logic separation.

This module contains the platform-independent proxy core: outbound request
construction, backend response classification and error page rendering,
keeping it separate from the FastAPI adapter.
"""
