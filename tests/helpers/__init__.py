"""
Test helpers package for objmeta

Provides reusable helpers for:
- In-memory attribute repositories (fakes.py)
- Object context and identity builders (factories.py)
"""
