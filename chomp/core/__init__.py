"""
Core business logic for one-time video sharing.

This module is framework-agnostic - it doesn't import FastAPI or call
yt-dlp directly. The downloader sits behind a protocol, so the pipeline
can be tested in isolation with a fake.
"""
