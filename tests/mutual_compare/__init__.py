"""
Mutual Compare Tests Package
============================
Test suite for the mutual document comparison engine.

Run all tests: python3 -m pytest tests/mutual_compare/ -v
Run specific: python3 -m pytest tests/mutual_compare/test_differ.py -v
"""

__version__ = "1.0.0"
