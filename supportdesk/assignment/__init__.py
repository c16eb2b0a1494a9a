"""
Assignment Module
=================

Routes tickets to agents and keeps agent workloads consistent.
"""
