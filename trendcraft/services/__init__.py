"""
Services module for TrendCraft.

This package contains the service modules behind the API:
- Apify client and the trend fetch pipeline built on it
- Per-platform trend normalization
- Gemini post drafting
- Authentication and post analytics
"""
