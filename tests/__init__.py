"""Slipstream test-suite (unit, integration, property)."""
