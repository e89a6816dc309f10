"""
tests.integration
=================

End-to-end flows: proxy, token double, signer and sinks together.
"""
