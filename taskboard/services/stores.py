"""Backing store selection from the environment."""

import os
from pathlib import Path

from taskboard.services.task_store import JsonTaskStore, SupabaseTaskStore, TaskStore
from taskboard.services.user_directory import JsonUserDirectory, SupabaseUserDirectory, UserDirectory
from taskboard.utils.errors import StoreError

SUPPORTED_BACKENDS = ("supabase", "json")


def get_store_backend() -> str:
    """Backend name from TASKBOARD_STORE (default: supabase)."""
    backend = os.environ.get("TASKBOARD_STORE", "supabase").strip().lower()
    if backend not in SUPPORTED_BACKENDS:
        raise StoreError(f"Unsupported TASKBOARD_STORE: {backend}")
    return backend


def get_data_dir() -> Path:
    """Directory for the JSON stores (TASKBOARD_DATA_DIR, default .data)."""
    return Path(os.environ.get("TASKBOARD_DATA_DIR", ".data"))


def get_task_store() -> TaskStore:
    if get_store_backend() == "json":
        return JsonTaskStore(get_data_dir())
    return SupabaseTaskStore()


def get_user_directory() -> UserDirectory:
    if get_store_backend() == "json":
        return JsonUserDirectory(get_data_dir())
    return SupabaseUserDirectory()
