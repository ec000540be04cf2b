"""
Exercise PDF Service - renders exercise plans to PDF.

Keeps a pool of warm headless Chromium browsers and feeds render requests
to them through a concurrency-limited FIFO queue.
"""

__version__ = "1.0.0"
