"""Deal Pipeline - seller-side sale tracking from accepted offer to signed deed."""

__version__ = "1.0.0"
