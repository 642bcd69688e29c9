"""
Test Suite for the Opportunity Engine.

Test organization:
    - unit/: Unit tests for individual components
    - integration/: End-to-end batch tests over the in-memory gateway
    - fixtures/: Shared test configuration

Running Tests:
    pytest tests/                           # All tests
    pytest tests/unit/                      # Unit tests only
    pytest -m integration                   # Integration tests only
"""
