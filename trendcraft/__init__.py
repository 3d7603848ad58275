"""
TrendCraft Backend Package

This package contains the FastAPI backend for the TrendCraft application.
It provides API endpoints for discovering trending keywords per social platform,
drafting posts with Google Gemini and tracking post performance.

The main components are:
- FastAPI application with REST endpoints
- Apify actor runs for trend scraping, normalized into a single trend schema
- Gemini integration for post drafting
"""
