"""CardSmith - output generation for character card and worldbook agents."""

__version__ = "0.3.0"
