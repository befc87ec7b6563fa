"""
Productivity Tracker Service

This service is responsible for:
- Polling a local Git repository for today's commits and working tree state
- Maintaining streak, total and daily counters
- Detecting achievements
- Sending activity events to the Klaviyo Events API
- Scheduling polls and the end-of-day summary
"""

__version__ = "1.0.0"
__description__ = "Developer productivity tracking and Klaviyo event service"
