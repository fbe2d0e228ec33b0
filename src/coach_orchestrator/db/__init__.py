"""Data access for the orchestrator."""

from .context_store import ContextStore, StoreResult, SupabaseContextStore

__all__ = ["ContextStore", "StoreResult", "SupabaseContextStore"]
