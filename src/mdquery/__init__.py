"""mdquery - hybrid lexical and semantic search over local Markdown files."""

__version__ = "0.1.0"
