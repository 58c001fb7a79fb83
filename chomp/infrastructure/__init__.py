"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- fetcher: the yt-dlp download tool

These wrappers translate between external formats and our domain models.
"""
