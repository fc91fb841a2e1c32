"""Construct: chat-driven orchestration of supervised engineering tasks."""

__version__ = "0.1.0"
