"""
Shared API
==========

Middleware, exception handlers and dependencies common to every router.
"""
