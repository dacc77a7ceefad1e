"""
PrepCoach - Interview Practice Platform
JSON API for practice sessions with adaptive difficulty recommendations.

Architecture:
- PostgreSQL (hosted): profiles, question banks, schedules, job cache, tokens
- MongoDB: interview sessions, performance metrics, recommendation history
- External APIs: auth provider, Google Calendar, JSearch, ElevenLabs, OpenAI
"""

__version__ = "1.0.0"
