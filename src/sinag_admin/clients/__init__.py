"""Adapters for the ledger RPC and the media pinning service."""
