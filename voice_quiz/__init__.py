"""Telegram client for the lecture-to-quiz API."""
