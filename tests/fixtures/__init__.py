"""
Test Fixtures - Shared Test Configurations.

    - sample_config.yaml: Sample configuration for ConfigLoader tests
"""
