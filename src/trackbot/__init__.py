"""IRC notification bot for issue trackers and source control."""

__version__ = "0.1.0"
