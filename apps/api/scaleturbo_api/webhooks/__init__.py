"""Outbound webhook dispatch."""
