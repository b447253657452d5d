"""Synthetic test data generators."""
