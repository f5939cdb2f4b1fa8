"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    format_size: Human readable byte counts
    get_supabase_client: Function to get Supabase client
    check_connection: Health check function
"""

from config.settings import settings, get_settings, Settings, format_size
from config.database import (
    get_supabase_client,
    check_connection,
    DatabaseError,
    ConnectionError
)

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",
    "format_size",

    # Database
    "get_supabase_client",
    "check_connection",
    "DatabaseError",
    "ConnectionError",
]
