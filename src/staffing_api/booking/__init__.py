"""
Booking Module

Seat booking for project staffing:
- Matcher: eligible candidates for a seat's requirements
- State machine: single authority over assignment status
- Readiness aggregator: project status derived from its assignments
- Notification dispatcher: post-commit, best-effort event delivery
- Offer expiry: background cancellation of stale offers
"""

__version__ = "1.0.0"
