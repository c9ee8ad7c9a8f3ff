"""Scan engine and the top-level listening/scanning controller."""
