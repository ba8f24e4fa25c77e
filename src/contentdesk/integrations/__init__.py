"""Clients for the external services the desk talks to.

Provides:
- Scheduling service client (publish approved records)
- AI caption generator
- Email sender for the notes notifier
"""
