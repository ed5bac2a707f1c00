"""Course video generation pipeline with human approval gates."""

__version__ = "0.1.0"
