"""clipingest - import video clips from a card into a take registry."""

__version__ = "0.1.0"
