"""
HELMSMAN Test Suite

Test Organization:
    tests/
    ├── __init__.py          # This file
    ├── conftest.py          # Shared pytest fixtures
    ├── fixtures/            # Fake transformers and speech channels
    └── unit/                # Unit tests (no network, no audio hardware)

Running Tests:
    pytest tests/

Requirements:
    pip install -e ".[test]"
"""
