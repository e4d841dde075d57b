"""
Test suite for recordstore

Contains:
- tests/unit/          : Unit tests for individual modules
"""
