"""Shared helpers: string similarity, text scoring, filters and statistics."""
