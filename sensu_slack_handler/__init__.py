"""
Sensu Slack Handler - posts Sensu monitoring events to Slack.

This package reads a single Sensu event, renders it into a Slack
attachment and delivers it through an incoming webhook.
"""

__version__ = "0.1.0"
