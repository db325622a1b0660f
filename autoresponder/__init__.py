"""
Vacation Auto-Responder
Replies once to every unanswered Gmail message and files it under a label
"""

__version__ = "1.0.0"
__author__ = "Vacation Responder"
__description__ = "Gmail vacation auto-responder with a FastAPI trigger"
