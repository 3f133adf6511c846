"""Report output targets."""

from depreport.sink.base import Bold, Image, Inline, Justify, Link, Sink
from depreport.sink.markdown import MarkdownSink

__all__ = ["Bold", "Image", "Inline", "Justify", "Link", "MarkdownSink", "Sink"]
