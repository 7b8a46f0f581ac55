"""Test utilities for perch middleware.

    from perch.testing import TestClient, receive_for, scope_for
"""

from perch.testing.client import TestClient, receive_for, scope_for

__all__ = [
    "TestClient",
    "receive_for",
    "scope_for",
]
