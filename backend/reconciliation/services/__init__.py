"""
Reconciliation Services Module
"""
