"""Supabase-backed authentication and account directory."""
