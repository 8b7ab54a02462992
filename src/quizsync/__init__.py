"""Snapshot sync service for quiz progress data."""
