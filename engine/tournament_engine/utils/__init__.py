"""Shared helpers for the tournament engine."""
