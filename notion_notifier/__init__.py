"""Send Notion database reminders to Telegram or Slack, one pass per run."""

__version__ = "1.0.0"
