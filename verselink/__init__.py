"""verselink - scripture reference resolution service for notes."""

__version__ = "0.1.0"
