"""Test support helpers shared across the suite."""
