"""Database module for game persistence."""

from stocktycoon.db.base import GameStore
from stocktycoon.db.memory import MemoryStore
from stocktycoon.db.supabase_client import SupabaseStore, get_supabase_client

__all__ = ["GameStore", "MemoryStore", "SupabaseStore", "get_supabase_client"]
