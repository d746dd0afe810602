"""Leaderboard services: the ranking engine and per-view sort/page state."""
