"""
Triage Module
=============

Bounded Context for ticket classification and AI-assisted updates.

Responsibilities:
- Suggest category and priority for new tickets (keyword or LLM)
- Fall back to manual review when the classifier is slow, down or unsure
- Route AI-proposed ticket updates through the guarded update path
"""
