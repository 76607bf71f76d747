"""
InternHub - Internship Marketplace Backend

Architecture:
- PostgreSQL: Structured data (users, profiles, internships, applications, job board)
- MongoDB: Documents (notifications, wishlists, preferences, messages, resume text)
- WebSocket: Live delivery of notifications and posting events
"""

__version__ = "1.0.0"
