"""
Tests Package - Unit Tests

Test structure:
- tests/conftest.py - shared fixtures and test doubles (stub extractor, fake publisher)
- tests/test_*.py - one module per component

External services are never contacted: Redis is replaced by AsyncMock clients
or fake publishers, Tika by httpx.MockTransport or a stub extractor.
"""
