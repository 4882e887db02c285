"""Terminal line-editing building blocks: undo history, input validation and a terminal layer."""

__version__ = "0.1.0"