"""Strava webhook to Google Sheets bridge."""
