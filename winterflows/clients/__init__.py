"""Outbound clients used by step handlers."""

from .slack import SlackApiError, SlackClient

__all__ = ["SlackApiError", "SlackClient"]
