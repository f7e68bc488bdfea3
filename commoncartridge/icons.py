"""
icons.py

Console markers used in status and warning lines.
"""

SUCCESS = "✅"
WARNING = "⚠️"
ERROR = "❌"
INFO = "ℹ️"

TOPIC = "💬"
WEBLINK = "🔗"
ASSIGNMENT = "📝"
QUIZ = "❓"
LTI = "🧩"
FOLDER = "📁"
