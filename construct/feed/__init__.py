"""Progressive feed rendering."""

from construct.feed.formatting import render_feed
from construct.feed.renderer import FeedRenderer

__all__ = [
    "FeedRenderer",
    "render_feed",
]
