"""
Test Suite for the Book Catalog API

Test Organization:
- conftest.py: Shared fixtures (test database, client, sessions, sample data)
- test_auth.py: /auth register, login, logout, me, status
- test_oauth.py: Google / GitHub login and callbacks
- test_books.py: /books endpoints
- test_reviews.py: /reviews endpoints
- test_sessions.py / test_identity.py: services outside HTTP
- test_main.py: app wiring, docs, rate limiting

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_books.py

    # Run with verbose output
    pytest -v
"""
