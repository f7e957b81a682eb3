"""
Permify toolkit test suite.

This package contains:
- unit/: Unit tests (no network)
- integration/: Integration tests (in-memory Permify server over httpx.MockTransport)
"""
