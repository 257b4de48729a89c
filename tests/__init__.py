"""
Tests for gridq
===============

Run all tests:
    pytest tests/

Skip the longer training runs:
    pytest tests/ -m "not slow"
"""
