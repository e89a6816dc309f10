"""
tests.unit
==========

Fast, in-process tests for single components of the engine.
"""
