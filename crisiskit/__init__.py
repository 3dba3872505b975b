"""
CrisisKit service package.

Provides a FastAPI application for incident intake forms, a pluggable
storage layer (hosted Supabase, Google Sheets, or a local key-value
fallback) and a best-effort Google Sheets webhook relay.
"""
