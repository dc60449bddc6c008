"""Koda practice engine."""
