"""
Meeting orchestration engine.

Pairs a video-conferencing provider (Zoom, Google Meet) with a calendar
provider (Google Calendar, Outlook Calendar) and keeps a durable booking
record for every meeting scheduled through them.
"""

__version__ = "1.0.0"
