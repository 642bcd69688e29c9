"""
Integration Tests - End-to-End Batch Tests.

These tests wire the orchestrator, record service and name generator
to the InMemoryPersistenceGateway, so the full workflow runs without
external dependencies.

Test Files:
    - test_batch_creation.py: Batch creation, partial failure, KPIs
"""
