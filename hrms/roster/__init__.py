"""Roster schedules, check-in / check-out and overtime."""
