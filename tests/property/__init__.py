"""
tests.property
==============

Hypothesis-driven checks of signing and replay invariants.
"""
