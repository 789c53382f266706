"""
Shared utilities for HiveBox components.

- logging_config: one log format for the hive API and the kiosks
"""
