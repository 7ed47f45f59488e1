"""
Mutual Compare Test Suite
=========================
"""
