"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (SLA, Assignment, Lifecycle and Triage).

Architecture Pattern: Modular Monolith
- Each module (sla, assignment, lifecycle, triage) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add ticket or agent business rules to the shared kernel.
"""

__version__ = "1.0.0"
