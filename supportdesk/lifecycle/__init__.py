"""
Lifecycle Module
================

Ticket creation, conversation, status transitions and SLA breach recording.
"""
