"""Tests for inbound chat event parsing."""

from construct.model.message import ChatEvent


def _event(content: str) -> ChatEvent:
    return ChatEvent(room_id="!a", sender="alice", content=content)


def test_command_parsing():
    event = _event("  .Task   add input validation  ")
    assert event.is_command
    assert event.parse_command() == ("task", "add input validation")


def test_command_without_args():
    assert _event(".approve").parse_command() == ("approve", "")


def test_lone_prefix_is_not_a_command():
    assert not _event(".").is_command
    assert not _event(",").is_raw_command


def test_plain_text():
    event = _event("hello")
    assert not event.is_command
    assert not event.is_raw_command
    assert event.parse_command() == ("", "hello")


def test_raw_command():
    event = _event(",  git status")
    assert event.is_raw_command
    assert not event.is_command
    assert event.raw_command() == "git status"


def test_blank():
    assert _event(" \n ").is_blank
