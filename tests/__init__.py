"""
Practice Site tests.

Running Tests:
    # All unit tests
    pytest tests/unit -v

    # One module
    pytest tests/unit/test_chat_service.py -v

Unit tests never touch the network: the booking backend is mocked at the
httpx client and Redis is patched out, so sessions use the in-memory
fallback.
"""
