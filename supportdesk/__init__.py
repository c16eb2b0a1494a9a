"""
SupportDesk
===========

Support ticket lifecycle engine: SLA tracking, agent assignment with
capacity limits, the ticket state machine and AI-assisted triage.
"""

__version__ = "1.0.0"
