"""Workers package initialization."""
