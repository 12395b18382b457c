"""Persistence backends"""
import logging

from config.settings import STORE_CONFIG
from src.base import BaseStore
from src.storage.local_store import LocalStore

logger = logging.getLogger(__name__)


def open_store(offline: bool = False) -> BaseStore:
    """Open the hosted store, or the local JSON store when ``offline`` is set."""
    if offline:
        logger.info(f"Using local store at {STORE_CONFIG['local_path']}")
        return LocalStore(STORE_CONFIG['local_path'])
    from src.storage.supabase_store import SupabaseStore
    return SupabaseStore.from_settings()


__all__ = ['open_store', 'LocalStore']
