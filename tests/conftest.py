"""Shared fixtures for AllianceRank tests"""
import pytest

from src.storage.local_store import LocalStore


@pytest.fixture
def store():
    """Empty in-memory store"""
    return LocalStore()
