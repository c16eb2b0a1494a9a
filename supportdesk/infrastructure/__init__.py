"""
Infrastructure
==============

Database engine, unit of work implementations, the in-memory store and
the LLM client.
"""
