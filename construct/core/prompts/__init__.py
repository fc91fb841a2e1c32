"""Prompt and notice templates used by the workflow engine and command handlers."""
