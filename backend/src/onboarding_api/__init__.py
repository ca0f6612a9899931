"""Onboarding administration API."""
