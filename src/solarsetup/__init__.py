"""Off-grid solar setup modelling and compatibility checks."""

__version__ = "0.1.0"
