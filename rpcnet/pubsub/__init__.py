"""Publish-subscribe sessions, subscribers, notification sinks and a one-shot channel."""